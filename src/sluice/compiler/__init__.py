"""On-demand compilation of typed scripts, components, JSON and stylesheets.

The compilers themselves are external; inject them as a ``Toolchain``::

    from sluice.compiler import Toolchain

    app = App(config, toolchain=Toolchain(my_transpiler, my_component_toolkit))
"""

from sluice.compiler.kinds import FileKind
from sluice.compiler.pipeline import Compiler
from sluice.compiler.toolchain import (
    MISSING_TOOLCHAIN,
    Block,
    CodeResult,
    ComponentToolkit,
    Descriptor,
    ParseResult,
    ScriptOptions,
    StyleOptions,
    TemplateOptions,
    Toolchain,
    TranspileOptions,
    Transpiler,
)

__all__ = [
    "MISSING_TOOLCHAIN",
    "Block",
    "CodeResult",
    "Compiler",
    "ComponentToolkit",
    "Descriptor",
    "FileKind",
    "ParseResult",
    "ScriptOptions",
    "StyleOptions",
    "TemplateOptions",
    "Toolchain",
    "TranspileOptions",
    "Transpiler",
]
