"""Turn a fetched source body into an executable module body.

``Compiler.compile()`` picks the compiler for the request's ``FileKind``
and returns JavaScript module source. Any failure is logged with the
request URL and raised as ``CompilationFailure``: a malformed source
must surface as a broken module load, never as a silently broken module.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from urllib.parse import unquote

from sluice.compiler import templates
from sluice.compiler.component import compile_component, decompose_component
from sluice.compiler.kinds import FileKind
from sluice.compiler.templates import js, render
from sluice.compiler.toolchain import Toolchain, TranspileOptions
from sluice.config import ProxyConfig
from sluice.errors import CompilationFailure
from sluice.http.request import Request
from sluice.registry import VirtualModuleRegistry

logger = logging.getLogger("sluice.compiler")

type KindCompiler = Callable[[Compiler, Request, str], str]


def compile_json(compiler: Compiler, request: Request, text: str) -> str:
    return render(templates.JSON_MODULE, text=text)


def compile_typescript(compiler: Compiler, request: Request, text: str) -> str:
    return compiler.toolchain.transpiler.transpile(text, TranspileOptions(), request.url)


def compile_stylesheet(compiler: Compiler, request: Request, text: str) -> str:
    return render(
        templates.STYLESHEET,
        scope_id=js(f"data-v-{compiler.timestamp()}"),
        css=js(text),
    )


COMPILERS: dict[FileKind, KindCompiler] = {
    FileKind.JSON: compile_json,
    FileKind.TYPESCRIPT: compile_typescript,
    FileKind.COMPONENT: compile_component,
    FileKind.STYLESHEET: compile_stylesheet,
}


class Compiler:
    """The compilation pipeline bound to one worker's toolchain and registry.

    ``clock`` returns seconds since the epoch; scope ids are derived from
    it in milliseconds.
    """

    __slots__ = ("clock", "config", "registry", "toolchain")

    def __init__(
        self,
        toolchain: Toolchain,
        registry: VirtualModuleRegistry,
        config: ProxyConfig,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.toolchain = toolchain
        self.registry = registry
        self.config = config
        self.clock = clock

    def timestamp(self) -> str:
        return str(int(self.clock() * 1000))

    def builtin_module(self, request: Request) -> str:
        """Re-export a host built-in module as this module's default export.

        ``/noname-builtinModules/fs`` → ``const module = require("fs")``.
        """
        prefix = self.config.builtin_prefix
        name = unquote(request.path[len(prefix) :])
        logger.info("compiling builtin module %s", name)
        return render(templates.BUILTIN_MODULE, name=js(name))

    def compile(self, request: Request, text: str) -> str:
        """Compile *text* fetched for *request* into module source."""
        kind = FileKind.from_path(request.path)
        logger.info("compiling %s", request.url)
        with self._reporting(request):
            if kind is None:
                msg = f"no compiler for {request.path}"
                raise ValueError(msg)
            code = COMPILERS[kind](self, request, text)
        logger.info("%s compiled", request.url)
        return code

    def sub_modules(self, request: Request, text: str) -> dict[str, str]:
        """Recompile the component at *request*; return its sub-modules by URL.

        The sub-modules are registered as well, but the returned mapping
        holds all of them even when the registry is too small to.
        """
        logger.info("recompiling component %s", request.url)
        with self._reporting(request):
            _, modules = decompose_component(self, request, text)
        for url, code in modules.items():
            self.registry.set(url, code)
        return modules

    @contextmanager
    def _reporting(self, request: Request) -> Iterator[None]:
        try:
            yield
        except CompilationFailure:
            logger.exception("%s failed to compile", request.url)
            raise
        except Exception as exc:
            logger.exception("%s failed to compile", request.url)
            raise CompilationFailure(request.url, str(exc)) from exc
