"""Request classification: which strategy answers an intercepted request."""

from sluice.routing.classifier import (
    FIRST_STAGE_RULES,
    SECOND_STAGE_RULES,
    Decision,
    RoutingContext,
    Rule,
    Strategy,
    classify,
    prepare_deferred,
)

__all__ = [
    "FIRST_STAGE_RULES",
    "SECOND_STAGE_RULES",
    "Decision",
    "RoutingContext",
    "Rule",
    "Strategy",
    "classify",
    "prepare_deferred",
]
