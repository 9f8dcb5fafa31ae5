"""Request classification as ordered predicate → strategy rules.

Classification is a pure function of the request and a small
``RoutingContext`` snapshot. The first rule whose predicate matches
wins, so precedence is the order of the rule tuples below and can be
audited and tested without any I/O.

Two stages:

1. ``FIRST_STAGE_RULES`` run on the request as received.
2. Requests classified ``DEFER`` are rewritten by ``prepare_deferred()``
   (``v=<version>`` query, same-origin mode, manual redirects) and run
   through ``SECOND_STAGE_RULES``.
"""

import re
from collections.abc import Callable, Container
from dataclasses import dataclass
from enum import Enum

from sluice.http.request import Request


class Strategy(Enum):
    """How an intercepted request is answered."""

    OFFLINE_PASSTHROUGH = "offline-passthrough"
    ROOT = "root"
    DEFER = "defer"
    STATIC = "static"
    VIRTUAL_MODULE = "virtual-module"
    BUILTIN_MODULE = "builtin-module"
    COMPILE = "compile"


@dataclass(frozen=True, slots=True)
class RoutingContext:
    """What the rules may look at besides the request itself."""

    scope_url: str
    builtin_prefix: str
    version: str | None = None
    virtual_modules: Container[str] = frozenset()


type Predicate = Callable[[Request, RoutingContext], bool]


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    predicate: Predicate
    strategy: Strategy


@dataclass(frozen=True, slots=True)
class Decision:
    strategy: Strategy
    rule: str


# Extensions the first stage hands to the second stage
_DEFERRED_EXTENSION = re.compile(r"\.(js|css|vue|ts|json)$")

# Suffixes the second stage may compile. "css" carries no dot: any path
# ending in "css" (e.g. "/theme.scss") matches.
_COMPILABLE_SUFFIXES = (".ts", ".json", ".vue", "css")


def _always(request: Request, ctx: RoutingContext) -> bool:
    return True


def _not_network(request: Request, ctx: RoutingContext) -> bool:
    return not request.is_network


def _is_root(request: Request, ctx: RoutingContext) -> bool:
    return request.url == ctx.scope_url


def _deferrable(request: Request, ctx: RoutingContext) -> bool:
    return (
        request.method != "GET"
        or bool(request.search)
        or _DEFERRED_EXTENSION.search(request.path) is not None
    )


def _is_virtual(request: Request, ctx: RoutingContext) -> bool:
    return request.url in ctx.virtual_modules


def _is_builtin(request: Request, ctx: RoutingContext) -> bool:
    return request.path.startswith(ctx.builtin_prefix)


def _plain_asset(request: Request, ctx: RoutingContext) -> bool:
    path = request.path
    return not path.endswith(_COMPILABLE_SUFFIXES) and not _is_builtin(request, ctx)


def _declaration(request: Request, ctx: RoutingContext) -> bool:
    return request.path.endswith(".d.ts")


def _same_origin_data(request: Request, ctx: RoutingContext) -> bool:
    path = request.path
    return (path.endswith(".json") or path.endswith("css")) and "origin" not in request.headers


FIRST_STAGE_RULES: tuple[Rule, ...] = (
    Rule("non-network-scheme", _not_network, Strategy.OFFLINE_PASSTHROUGH),
    Rule("registration-root", _is_root, Strategy.ROOT),
    Rule("compilable-or-dynamic", _deferrable, Strategy.DEFER),
    Rule("static-asset", _always, Strategy.STATIC),
)

SECOND_STAGE_RULES: tuple[Rule, ...] = (
    Rule("virtual-module", _is_virtual, Strategy.VIRTUAL_MODULE),
    Rule("plain-asset", _plain_asset, Strategy.STATIC),
    Rule("type-declaration", _declaration, Strategy.STATIC),
    Rule("same-origin-data", _same_origin_data, Strategy.STATIC),
    Rule("builtin-module", _is_builtin, Strategy.BUILTIN_MODULE),
    Rule("compile", _always, Strategy.COMPILE),
)


def classify(request: Request, ctx: RoutingContext, rules: tuple[Rule, ...]) -> Decision:
    """Return the decision of the first rule matching *request*."""
    for rule in rules:
        if rule.predicate(request, ctx):
            return Decision(rule.strategy, rule.name)
    msg = f"no rule matched {request.method} {request.url}"
    raise LookupError(msg)


def prepare_deferred(request: Request, version: str | None) -> Request:
    """Rewrite a deferred request before second-stage classification.

    Sets ``v=<version>`` as a cache buster, switches to same-origin mode
    and manual redirect handling. Headers, credentials, method and body
    are kept.
    """
    if version is not None:
        request = request.with_query(request.query.set("v", version))
    return request.with_options(mode="same-origin", redirect="manual")
