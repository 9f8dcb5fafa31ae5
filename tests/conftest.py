"""Shared fixtures: a scripted upstream origin and a fake compiler toolchain."""

import json
import re
from collections.abc import Mapping

import httpx
import pytest

from sluice.compiler.toolchain import (
    Block,
    CodeResult,
    Descriptor,
    ParseResult,
    ScriptOptions,
    StyleOptions,
    TemplateOptions,
    Toolchain,
    TranspileOptions,
)
from sluice.config import ProxyConfig
from sluice.fetching import HttpxFetcher

UPSTREAM = "http://upstream.test"
SCOPE = "http://testserver/"
NOW = 1_700_000_000.0


class Upstream:
    """An origin server behind ``httpx.MockTransport``.

    Files are keyed by path. Setting ``offline`` makes every request
    fail to connect, the way an unreachable origin does; paths in
    ``timeouts`` fail after connecting.
    """

    def __init__(self) -> None:
        self.files: dict[str, tuple[int, str, bytes]] = {}
        self.offline = False
        self.timeouts: set[str] = set()
        self.requests: list[httpx.Request] = []

    def serve(
        self,
        path: str,
        body: str | bytes,
        *,
        content_type: str = "text/plain",
        status: int = 200,
    ) -> None:
        data = body.encode("utf-8") if isinstance(body, str) else body
        self.files[path] = (status, content_type, data)

    def manifest(self, version: str, ext_version: str) -> None:
        self.serve(
            "/version.json",
            json.dumps({"version": version, "extVersion": ext_version}),
            content_type="application/json",
        )

    def hits(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path in self.timeouts:
            raise httpx.ReadTimeout("read timed out", request=request)
        entry = self.files.get(request.url.path)
        if entry is None:
            return httpx.Response(404, text="not found")
        status, content_type, body = entry
        return httpx.Response(status, content=body, headers={"content-type": content_type})

    def fetcher(self) -> HttpxFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return HttpxFetcher(UPSTREAM, client=client)


class FakeTranspiler:
    """Strips ``: number`` annotations and records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, TranspileOptions, str]] = []

    def transpile(self, source: str, options: TranspileOptions, filename: str) -> str:
        self.calls.append((source, options, filename))
        return source.replace(": number", "")


_BLOCK = re.compile(r"<(template|script|style)([^>]*)>(.*?)</\1>", re.DOTALL)
_ATTR = re.compile(r'([\w-]+)(?:="([^"]*)")?')


def _attrs(raw: str) -> Mapping[str, str | bool]:
    return {name: value or True for name, value in _ATTR.findall(raw)}


class FakeComponentToolkit:
    """A tiny single-file-component compiler.

    Understands ``<template>``, ``<script>`` and ``<style>`` blocks and
    records the options of every compile call. A source containing
    ``<<broken>>`` fails to parse; a template containing ``{{ broken``
    reports a template error.
    """

    def __init__(self) -> None:
        self.script_options: list[ScriptOptions] = []
        self.template_options: list[TemplateOptions] = []
        self.style_options: list[StyleOptions] = []

    def parse(self, source: str, *, filename: str, source_map: bool = True) -> ParseResult:
        if "<<broken>>" in source:
            return ParseResult(Descriptor(filename), errors=("unexpected token <<broken>>",))
        template = script = None
        styles: list[Block] = []
        for tag, raw_attrs, content in _BLOCK.findall(source):
            block = Block(content.strip(), _attrs(raw_attrs))
            if tag == "template":
                template = block
            elif tag == "script":
                script = block
            else:
                styles.append(block)
        return ParseResult(
            Descriptor(filename, template=template, script=script, styles=tuple(styles))
        )

    def compile_script(self, descriptor: Descriptor, options: ScriptOptions) -> Block:
        self.script_options.append(options)
        if descriptor.script is None:
            return Block("export default {}")
        return descriptor.script

    def compile_template(self, options: TemplateOptions) -> CodeResult:
        self.template_options.append(options)
        if "{{ broken" in options.source:
            return CodeResult("", errors=("unterminated interpolation",))
        return CodeResult(
            'import { h } from "vue";\n'
            f"export function render() {{ return h('div', {json.dumps(options.source)}) }}"
        )

    def compile_style(self, options: StyleOptions) -> CodeResult:
        self.style_options.append(options)
        if options.scoped:
            return CodeResult(options.source.replace("{", f"[{options.id}] {{", 1))
        return CodeResult(options.source)

    def rewrite_default(self, code: str, as_name: str) -> str:
        return code.replace("export default", f"const {as_name} =", 1)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def transpiler() -> FakeTranspiler:
    return FakeTranspiler()


@pytest.fixture
def toolkit() -> FakeComponentToolkit:
    return FakeComponentToolkit()


@pytest.fixture
def toolchain(transpiler: FakeTranspiler, toolkit: FakeComponentToolkit) -> Toolchain:
    return Toolchain(transpiler, toolkit)


@pytest.fixture
def config() -> ProxyConfig:
    return ProxyConfig(upstream=UPSTREAM, scope_url=SCOPE)


@pytest.fixture
def clock() -> object:
    return lambda: NOW
