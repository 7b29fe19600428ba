"""Rule resolution for formtree.

A rule is a validator function, a rule string such as
``"required|minLength(3)|pattern('[a-z]+')"``, or a list of either. Rule
strings are parsed by a literal-only lexer/parser; arguments can be numbers,
strings, booleans, null, lists and mappings, never expressions.

Usage:
    from formtree.rules import register_validator, resolve

    register_validator("even", lambda: lambda control: None if control.numbered_value % 2 == 0 else {"even": True})
    validators = resolve("required|even")
"""

from formtree.rules.builtins import BUILTIN_FACTORIES
from formtree.rules.lexer import Lexer, LexerError, Token, TokenType
from formtree.rules.parser import ParseError, RuleCall, RuleParser, parse_rule
from formtree.rules.registry import (
    REQUIRED_RULE,
    ValidatorRegistry,
    default_registry,
    register_validator,
    reset_default_registry,
    resolve,
)

__all__ = [
    # Parsing
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    "ParseError",
    "RuleCall",
    "RuleParser",
    "parse_rule",
    # Registry
    "BUILTIN_FACTORIES",
    "REQUIRED_RULE",
    "ValidatorRegistry",
    "default_registry",
    "register_validator",
    "reset_default_registry",
    "resolve",
]
