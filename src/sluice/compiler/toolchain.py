"""Contracts for the external compilers.

The pipeline never depends on a compiler's internals, only on two narrow
interfaces:

- ``Transpiler``: typed script → executable script, one pure function.
- ``ComponentToolkit``: the single-file-component parser/codegen
  (``parse``, ``compile_script``, ``compile_template``,
  ``compile_style``, ``rewrite_default``).

Implementations are injected into the app (``App(toolchain=...)``). The
data shapes passed across the seam are the frozen dataclasses below.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TranspileOptions:
    """Fixed typed-script settings: ES2015 modules, ES2019 target."""

    module: str = "ES2015"
    target: str = "ES2019"
    inline_source_map: bool = True
    resolve_json_module: bool = True
    es_module_interop: bool = True


class Transpiler(Protocol):
    def transpile(self, source: str, options: TranspileOptions, filename: str) -> str: ...


@dataclass(frozen=True, slots=True)
class Block:
    """One section of a component (``<template>``, ``<script>``, ``<style>``)."""

    content: str
    attrs: Mapping[str, str | bool] = field(default_factory=dict)

    @property
    def lang(self) -> str | None:
        value = self.attrs.get("lang")
        return value if isinstance(value, str) else None

    @property
    def scoped(self) -> bool:
        return bool(self.attrs.get("scoped", False))


@dataclass(frozen=True, slots=True)
class Descriptor:
    """A parsed single-file component."""

    filename: str
    template: Block | None = None
    script: Block | None = None
    script_setup: Block | None = None
    styles: tuple[Block, ...] = ()


@dataclass(frozen=True, slots=True)
class ParseResult:
    descriptor: Descriptor
    errors: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ScriptOptions:
    id: str
    inline_template: bool = True
    scoped: bool = False
    scope_id: str | None = None


@dataclass(frozen=True, slots=True)
class TemplateOptions:
    source: str
    filename: str
    id: str
    scoped: bool = False
    scope_id: str | None = None


@dataclass(frozen=True, slots=True)
class StyleOptions:
    source: str
    filename: str
    id: str
    scoped: bool = False


@dataclass(frozen=True, slots=True)
class CodeResult:
    """Generated code plus any diagnostics the compiler reported."""

    code: str
    errors: tuple[str, ...] = ()


class ComponentToolkit(Protocol):
    def parse(self, source: str, *, filename: str, source_map: bool = True) -> ParseResult: ...

    def compile_script(self, descriptor: Descriptor, options: ScriptOptions) -> Block: ...

    def compile_template(self, options: TemplateOptions) -> CodeResult: ...

    def compile_style(self, options: StyleOptions) -> CodeResult: ...

    def rewrite_default(self, code: str, as_name: str) -> str: ...


@dataclass(frozen=True, slots=True)
class Toolchain:
    transpiler: Transpiler
    components: ComponentToolkit


class MissingTranspiler:
    """Placeholder used when no transpiler was injected."""

    def transpile(self, source: str, options: TranspileOptions, filename: str) -> str:
        msg = "no typed-script transpiler configured; pass App(toolchain=...)"
        raise RuntimeError(msg)


class MissingComponentToolkit:
    """Placeholder used when no component toolkit was injected."""

    def _missing(self) -> RuntimeError:
        return RuntimeError("no component toolkit configured; pass App(toolchain=...)")

    def parse(self, source: str, *, filename: str, source_map: bool = True) -> ParseResult:
        raise self._missing()

    def compile_script(self, descriptor: Descriptor, options: ScriptOptions) -> Block:
        raise self._missing()

    def compile_template(self, options: TemplateOptions) -> CodeResult:
        raise self._missing()

    def compile_style(self, options: StyleOptions) -> CodeResult:
        raise self._missing()

    def rewrite_default(self, code: str, as_name: str) -> str:
        raise self._missing()


MISSING_TOOLCHAIN = Toolchain(MissingTranspiler(), MissingComponentToolkit())
