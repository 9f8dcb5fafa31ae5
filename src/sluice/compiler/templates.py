"""Kida templates for the generated module stubs.

Every template is a flat substitution with no block tags. Values that
end up inside JavaScript string or expression position are passed
through ``js()`` (JSON encoding) by the caller, so the templates never
need escaping logic of their own.
"""

import json
from functools import cache
from typing import Any

from kida import Environment

BUILTIN_MODULE = "const module = require({{ name }});\nexport default module;"

JSON_MODULE = "export default {{ text }}"

STYLE_BLOCK = (
    "let {{ element }} = document.createElement('style');\n"
    "{{ element }}.textContent = {{ css }};\n"
    "document.body.append({{ element }});"
)

STYLESHEET = (
    "const style = document.createElement('style');\n"
    "style.setAttribute('type', 'text/css');\n"
    "style.setAttribute('data-vue-dev-id', {{ scope_id }});\n"
    "style.textContent = {{ css }};\n"
    "document.head.appendChild(style);"
)

COMPONENT_SCRIPT = (
    "import { __sfc_main__ } from {{ url }};\n"
    "__sfc_main__.__scopeId = {{ scope_id }};"
)

COMPONENT_RENDER = (
    "import { render } from {{ url }};\n"
    "__sfc_main__.render = render;"
)

COMPONENT_EXPORT = "export default __sfc_main__;"


@cache
def environment() -> Environment:
    """The shared kida environment (no autoescaping: output is JavaScript)."""
    return Environment(autoescape=False)


@cache
def _template(source: str) -> Any:
    return environment().from_string(source)


def render(source: str, **context: object) -> str:
    return _template(source).render(context)


def js(value: object) -> str:
    """Encode *value* as a JavaScript literal."""
    return json.dumps(value, ensure_ascii=False)
