from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# arithmetic operator -> method of the precision type that performs it
ARITHMETIC_METHODS: Mapping[str, str] = MappingProxyType(
    {
        "/": "div",
        "*": "times",
        "+": "plus",
        "-": "minus",
    }
)

# Math.<fn> -> static method of the precision type
TRIG_FUNCTIONS: Mapping[str, str] = MappingProxyType(
    {
        "sin": "sin",
        "cos": "cos",
        "tan": "tan",
    }
)


@dataclass(frozen=True)
class RewriteRules:
    """Describes the precision type that arithmetic is rewritten against."""

    precision_type: str
    """the name the precision type is bound to in rewritten code"""
    module: str
    """the module specifier the precision type is imported from"""
    operator_methods: Mapping[str, str] = field(default_factory=lambda: ARITHMETIC_METHODS)
    math_namespace: str = "Math"
    """the identifier whose methods are candidates for static method rewrites"""
    static_methods: Mapping[str, str] = field(default_factory=lambda: TRIG_FUNCTIONS)


DECIMAL_JS = RewriteRules(precision_type="Decimal", module="decimal.js")
# big.js has the same arithmetic methods but no trigonometry
BIG_JS = RewriteRules(
    precision_type="Big", module="big.js", static_methods=MappingProxyType({})
)

DEFAULT_RULES = DECIMAL_JS

PRESETS: Mapping[str, RewriteRules] = MappingProxyType(
    {
        DECIMAL_JS.module: DECIMAL_JS,
        BIG_JS.module: BIG_JS,
    }
)
