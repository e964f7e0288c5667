"""MessageFormat 2 syntax package.

Provides the message parser and AST definitions. Separate from runtime
so tooling can inspect templates without formatting them.

Python 3.13+.
"""

from .ast import (
    CatchallKey,
    Expression,
    FunctionAnnotation,
    InputDeclaration,
    Literal,
    LocalDeclaration,
    Markup,
    Message,
    Option,
    Pattern,
    PatternElement,
    PatternMessage,
    SelectMessage,
    Text,
    VariableRef,
    Variant,
)
from .cursor import Cursor, ParseResult
from .parser import parse_message

__all__ = [
    "CatchallKey",
    "Cursor",
    "Expression",
    "FunctionAnnotation",
    "InputDeclaration",
    "Literal",
    "LocalDeclaration",
    "Markup",
    "Message",
    "Option",
    "ParseResult",
    "Pattern",
    "PatternElement",
    "PatternMessage",
    "SelectMessage",
    "Text",
    "VariableRef",
    "Variant",
    "parse_message",
]
