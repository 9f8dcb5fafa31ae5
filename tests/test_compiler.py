"""Tests for sluice.compiler: per-kind compilers and component decomposition."""

import pytest

from sluice.compiler import MISSING_TOOLCHAIN, Compiler, FileKind, Toolchain, TranspileOptions
from sluice.compiler.component import (
    SCRIPT_EXPORT,
    framework_base,
    rewrite_framework_imports,
    sub_module_url,
)
from sluice.config import ProxyConfig
from sluice.errors import CompilationFailure
from sluice.http.request import Request
from sluice.registry import VirtualModuleRegistry

SCOPE_ID = "data-v-1700000000000"
PANEL = "http://testserver/games/extension/ui/panel.vue?v=1.2.3"
FRAMEWORK = "/games/game/vue.esm-browser.js"

COMPONENT = """
<template><div>{{ msg }}</div></template>
<script lang="ts">
import { ref } from "vue";
const start: number = 1;
export default { setup() { return { msg: ref(start) } } }
</script>
<style scoped>.a { color: red }</style>
<style>.b { color: "blue" }</style>
"""


@pytest.fixture
def registry() -> VirtualModuleRegistry:
    return VirtualModuleRegistry()


@pytest.fixture
def compiler(
    toolchain: Toolchain, registry: VirtualModuleRegistry, config: ProxyConfig, clock
) -> Compiler:
    return Compiler(toolchain, registry, config, clock=clock)


def _get(url: str) -> Request:
    return Request("GET", url)


class TestFileKind:
    @pytest.mark.parametrize(
        ("path", "kind"),
        [
            ("/a.json", FileKind.JSON),
            ("/a.ts", FileKind.TYPESCRIPT),
            ("/a.vue", FileKind.COMPONENT),
            ("/a.css", FileKind.STYLESHEET),
            ("/a.scss", FileKind.STYLESHEET),
            ("/a.d.ts", None),
            ("/a.js", None),
        ],
    )
    def test_from_path(self, path: str, kind: FileKind | None) -> None:
        assert FileKind.from_path(path) is kind


class TestHelpers:
    def test_framework_base(self) -> None:
        assert framework_base("/games/extension/ui/panel.vue", "extension") == "/games/"
        assert framework_base("/extension/panel.vue", "extension") == "/"
        assert framework_base("/ui/panel.vue", "extension") == "/"

    def test_rewrite_framework_imports(self) -> None:
        code = "import { ref } from \"vue\";\nimport { h } from 'vue';\nimport x from \"vuex\";"
        rewritten = rewrite_framework_imports(code, "vue", FRAMEWORK)
        assert f'from "{FRAMEWORK}"' in rewritten
        assert f"from '{FRAMEWORK}'" in rewritten
        assert 'from "vuex"' in rewritten

    def test_sub_module_url_appends_type(self) -> None:
        assert sub_module_url(_get(PANEL), "script") == f"{PANEL}&type=script"

    def test_sub_module_url_without_query(self) -> None:
        url = sub_module_url(_get("http://testserver/panel.vue"), "template")
        assert url == "http://testserver/panel.vue?type=template"


class TestSimpleKinds:
    def test_json(self, compiler: Compiler) -> None:
        code = compiler.compile(_get("http://testserver/data.json?v=1"), '{"a": [1, 2]}')
        assert code == 'export default {"a": [1, 2]}'

    def test_typescript(self, compiler: Compiler, transpiler) -> None:
        request = _get("http://testserver/src/app.ts?v=1")
        code = compiler.compile(request, "export const n: number = 1;")

        assert code == "export const n = 1;"
        source, options, filename = transpiler.calls[0]
        assert options == TranspileOptions()
        assert (options.module, options.target) == ("ES2015", "ES2019")
        assert options.inline_source_map
        assert filename == request.url

    def test_stylesheet(self, compiler: Compiler) -> None:
        code = compiler.compile(_get("http://testserver/theme.css?v=1"), 'a::before { content: "x" }')

        assert "style.setAttribute('type', 'text/css');" in code
        assert f"style.setAttribute('data-vue-dev-id', \"{SCOPE_ID}\");" in code
        assert 'style.textContent = "a::before { content: \\"x\\" }";' in code
        assert code.endswith("document.head.appendChild(style);")

    def test_builtin_module(self, compiler: Compiler) -> None:
        code = compiler.builtin_module(_get("http://testserver/noname-builtinModules/fs?v=1"))
        assert code == 'const module = require("fs");\nexport default module;'

    def test_builtin_module_name_unquoted(self, compiler: Compiler) -> None:
        request = _get("http://testserver/noname-builtinModules/node%3Apath")
        assert 'require("node:path")' in compiler.builtin_module(request)


class TestFailures:
    def test_unknown_kind(self, compiler: Compiler) -> None:
        with pytest.raises(CompilationFailure) as exc_info:
            compiler.compile(_get("http://testserver/a.txt"), "hello")
        assert exc_info.value.url == "http://testserver/a.txt"

    def test_transpiler_error_wrapped(self, registry, config, clock) -> None:
        compiler = Compiler(MISSING_TOOLCHAIN, registry, config, clock=clock)
        with pytest.raises(CompilationFailure, match="transpiler"):
            compiler.compile(_get("http://testserver/app.ts"), "let a = 1")

    def test_failure_is_logged_with_url(
        self, compiler: Compiler, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level("ERROR", logger="sluice.compiler"):
            with pytest.raises(CompilationFailure):
                compiler.compile(_get("http://testserver/a.txt"), "hello")
        assert "http://testserver/a.txt failed to compile" in caplog.text


class TestComponent:
    def test_entry_module(self, compiler: Compiler) -> None:
        code = compiler.compile(_get(PANEL), COMPONENT)

        assert code.count(f'import {{ {SCRIPT_EXPORT} }} from "{PANEL}&type=script";') == 1
        assert code.count(f'__sfc_main__.__scopeId = "{SCOPE_ID}";') == 1
        assert code.count(f'import {{ render }} from "{PANEL}&type=template";') == 1
        assert code.count("__sfc_main__.render = render;") == 1
        assert code.count("export default __sfc_main__;") == 1
        assert code.count("document.createElement('style')") == 2

    def test_script_sub_module(self, compiler: Compiler, registry, transpiler) -> None:
        compiler.compile(_get(PANEL), COMPONENT)
        script = registry.get(f"{PANEL}&type=script")

        assert script is not None
        assert "export const __sfc_main__ = {" in script
        assert "export default" not in script
        assert ": number" not in script
        assert f'from "{FRAMEWORK}"' in script
        assert transpiler.calls[0][2] == f"{PANEL}&type=script"

    def test_template_sub_module(self, compiler: Compiler, registry) -> None:
        compiler.compile(_get(PANEL), COMPONENT)
        template = registry.get(f"{PANEL}&type=template")

        assert template is not None
        assert "export function render()" in template
        assert f'from "{FRAMEWORK}"' in template

    def test_one_scope_id_everywhere(self, compiler: Compiler, toolkit) -> None:
        compiler.compile(_get(PANEL), COMPONENT)

        script_opts = toolkit.script_options[0]
        template_opts = toolkit.template_options[0]
        assert script_opts.id == template_opts.id == SCOPE_ID
        assert script_opts.scoped and template_opts.scoped
        assert script_opts.scope_id == template_opts.scope_id == SCOPE_ID
        assert [opts.id for opts in toolkit.style_options] == [SCOPE_ID, SCOPE_ID]
        assert [opts.scoped for opts in toolkit.style_options] == [True, False]

    def test_styles_get_distinct_elements_and_encoded_css(self, compiler: Compiler) -> None:
        code = compiler.compile(_get(PANEL), COMPONENT)

        assert f'el0.textContent = ".a [{SCOPE_ID}] {{ color: red }}";' in code
        assert 'el1.textContent = ".b { color: \\"blue\\" }";' in code
        assert "document.body.append(el0);" in code
        assert "document.body.append(el1);" in code

    def test_unscoped_component(self, compiler: Compiler, toolkit) -> None:
        source = "<template><p>hi</p></template><script>export default {}</script>"
        code = compiler.compile(_get(PANEL), source)

        assert toolkit.script_options[0].scoped is False
        assert toolkit.script_options[0].scope_id is None
        assert toolkit.template_options[0].scope_id is None
        assert f'__sfc_main__.__scopeId = "{SCOPE_ID}";' in code
        assert "createElement('style')" not in code

    def test_plain_script_not_transpiled(self, compiler: Compiler, transpiler) -> None:
        compiler.compile(_get(PANEL), "<script>export default {}</script>")
        assert transpiler.calls == []

    def test_template_less_component(self, compiler: Compiler, registry) -> None:
        code = compiler.compile(_get(PANEL), "<script>export default { render() {} }</script>")

        assert f"{PANEL}&type=template" not in registry
        assert f"{PANEL}&type=script" in registry
        assert "import { render }" not in code
        assert "export default __sfc_main__;" in code

    def test_script_and_unscoped_style(self, compiler: Compiler, registry, toolkit) -> None:
        source = "<script>export default {}</script>\n<style>.a { color: red }</style>"
        code = compiler.compile(_get(PANEL), source)

        assert registry.urls() == [f"{PANEL}&type=script"]
        assert code.count("createElement('style')") == 1
        assert '".a { color: red }"' in code
        assert "import { render }" not in code
        assert toolkit.style_options[0].scoped is False

    def test_sub_modules_returned_past_registry_limit(
        self, toolchain: Toolchain, config: ProxyConfig, clock
    ) -> None:
        registry = VirtualModuleRegistry(limit=1)
        compiler = Compiler(toolchain, registry, config, clock=clock)

        modules = compiler.sub_modules(_get(PANEL), COMPONENT)

        assert list(modules) == [f"{PANEL}&type=script", f"{PANEL}&type=template"]
        assert "export const __sfc_main__" in modules[f"{PANEL}&type=script"]
        assert registry.urls() == [f"{PANEL}&type=template"]

    def test_sub_modules_wraps_failures(self, compiler: Compiler, registry) -> None:
        with pytest.raises(CompilationFailure, match="parse"):
            compiler.sub_modules(_get(PANEL), "<template><<broken>></template>")
        assert len(registry) == 0

    def test_parse_error(self, compiler: Compiler, registry) -> None:
        with pytest.raises(CompilationFailure, match="parse"):
            compiler.compile(_get(PANEL), "<template><<broken>></template>")
        assert len(registry) == 0

    def test_template_error(self, compiler: Compiler) -> None:
        source = "<template>{{ broken</template><script>export default {}</script>"
        with pytest.raises(CompilationFailure, match="template"):
            compiler.compile(_get(PANEL), source)

    def test_recompile_overwrites_sub_modules(
        self, registry, config, toolchain: Toolchain
    ) -> None:
        ticks = iter([1.0, 2.0])
        compiler = Compiler(toolchain, registry, config, clock=lambda: next(ticks))

        compiler.compile(_get(PANEL), "<script>export default { a: 1 }</script>")
        second = compiler.compile(_get(PANEL), "<script>export default { a: 2 }</script>")

        assert "a: 2" in registry.get(f"{PANEL}&type=script")
        assert "data-v-2000" in second
