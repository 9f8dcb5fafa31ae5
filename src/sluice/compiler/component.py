"""Single-file component decomposition.

A component is split into independently addressable sub-modules:

1. the compiled script, default export renamed to ``__sfc_main__`` and
   registered under ``<url>&type=script``;
2. the compiled template render function, registered under
   ``<url>&type=template`` (only when the component has a template);
3. one style-injection statement per ``<style>`` block.

The module returned for the component itself imports (1) and (2),
attaches the scope id and render function, exports the result as
default, and injects the styles as a side effect of evaluation.

Script, template and style compiles share one scope id. Framework
imports are pointed at a local copy found relative to the first
``anchor_segment`` directory of the request path.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sluice.compiler import templates
from sluice.compiler.templates import js, render
from sluice.compiler.toolchain import (
    CodeResult,
    ScriptOptions,
    StyleOptions,
    TemplateOptions,
    TranspileOptions,
)
from sluice.errors import CompilationFailure
from sluice.http.request import Request

if TYPE_CHECKING:
    from sluice.compiler.pipeline import Compiler

SCRIPT_EXPORT = "__sfc_main__"


def framework_base(path: str, anchor: str) -> str:
    """Everything in *path* before the *anchor* segment, with a trailing slash.

    ``/games/extension/ui/panel.vue`` → ``/games/``. Without the anchor
    the base is ``/``.
    """
    parts = path.split("/")
    if anchor not in parts:
        return "/"
    return "/".join(parts[: parts.index(anchor)]) + "/"


def rewrite_framework_imports(code: str, module: str, target: str) -> str:
    """Point ``from "module"`` / ``from 'module'`` imports at *target*."""
    for quote in ('"', "'"):
        code = code.replace(f"from {quote}{module}{quote}", f"from {quote}{target}{quote}")
    return code


def sub_module_url(request: Request, kind: str) -> str:
    """``origin + path + query`` with ``type=<kind>`` appended."""
    query = request.query.append("type", kind).encode()
    return f"{request.origin}{request.path}?{query}"


def _check(result: CodeResult, url: str, what: str) -> str:
    if result.errors:
        raise CompilationFailure(url, f"{what}: " + "; ".join(result.errors))
    return result.code


def decompose_component(
    compiler: Compiler, request: Request, text: str
) -> tuple[str, dict[str, str]]:
    """The entry module for a component, and its sub-modules by URL."""
    toolkit = compiler.toolchain.components
    config = compiler.config
    url = request.url

    parsed = toolkit.parse(text, filename=url, source_map=True)
    if parsed.errors:
        raise CompilationFailure(url, "parse: " + "; ".join(parsed.errors))
    descriptor = parsed.descriptor

    scoped = any(style.scoped for style in descriptor.styles)
    scope_id = f"data-v-{compiler.timestamp()}"
    compiler_scope_id = scope_id if scoped else None

    framework = framework_base(request.path, config.anchor_segment) + config.framework_local_path

    # Script first: the template and the entry module both reference it.
    script = toolkit.compile_script(
        descriptor,
        ScriptOptions(
            id=scope_id,
            inline_template=True,
            scoped=scoped,
            scope_id=compiler_scope_id,
        ),
    )
    script_url = sub_module_url(request, "script")
    content = script.content
    if script.lang == "ts":
        content = compiler.toolchain.transpiler.transpile(content, TranspileOptions(), script_url)
    script_code = toolkit.rewrite_default(content, SCRIPT_EXPORT).replace(
        f"const {SCRIPT_EXPORT}", f"export const {SCRIPT_EXPORT}", 1
    )
    modules = {
        script_url: rewrite_framework_imports(script_code, config.framework_module, framework)
    }
    body = [render(templates.COMPONENT_SCRIPT, url=js(script_url), scope_id=js(scope_id))]

    if descriptor.template is not None:
        template = toolkit.compile_template(
            TemplateOptions(
                source=descriptor.template.content,
                filename=url,
                id=scope_id,
                scoped=scoped,
                scope_id=compiler_scope_id,
            )
        )
        template_url = sub_module_url(request, "template")
        modules[template_url] = rewrite_framework_imports(
            _check(template, url, "template"), config.framework_module, framework
        )
        body.append(render(templates.COMPONENT_RENDER, url=js(template_url)))

    body.append(templates.COMPONENT_EXPORT)

    for index, style in enumerate(descriptor.styles):
        result = toolkit.compile_style(
            StyleOptions(source=style.content, filename=url, id=scope_id, scoped=style.scoped)
        )
        body.append(
            render(
                templates.STYLE_BLOCK,
                element=f"el{index}",
                css=js(_check(result, url, f"style #{index}")),
            )
        )

    return "\n".join(body), modules


def compile_component(compiler: Compiler, request: Request, text: str) -> str:
    """Register the sub-modules of a component and return its entry module."""
    entry, modules = decompose_component(compiler, request, text)
    for module_url, code in modules.items():
        compiler.registry.set(module_url, code)
    return entry
