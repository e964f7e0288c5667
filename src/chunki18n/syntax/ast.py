"""Data model for parsed message templates.

Frozen, slotted dataclasses mirroring the MessageFormat 2 data model:
a message is either a pattern message (declarations + one pattern) or a
select message (declarations + selectors + variants).

Python 3.13+. Zero external dependencies.
"""

from dataclasses import dataclass

from chunki18n.enums import MarkupKind

__all__ = [
    "CatchallKey",
    "Expression",
    "FunctionAnnotation",
    "InputDeclaration",
    "Literal",
    "LocalDeclaration",
    "Markup",
    "Message",
    "Option",
    "Pattern",
    "PatternElement",
    "PatternMessage",
    "SelectMessage",
    "Text",
    "VariableRef",
    "Variant",
]


@dataclass(frozen=True, slots=True)
class Literal:
    """Quoted (|...|) or unquoted literal value."""

    value: str


@dataclass(frozen=True, slots=True)
class VariableRef:
    """Variable reference: $name"""

    name: str


@dataclass(frozen=True, slots=True)
class Option:
    """Function or markup option: name=value"""

    name: str
    value: Literal | VariableRef


@dataclass(frozen=True, slots=True)
class FunctionAnnotation:
    """Function annotation: :number minimumFractionDigits=2"""

    name: str
    options: tuple[Option, ...] = ()


@dataclass(frozen=True, slots=True)
class Expression:
    """Placeholder expression.

    At least one of arg and function is present: {$x}, {|lit|},
    {$x :number}, {:datetime}.
    """

    arg: Literal | VariableRef | None
    function: FunctionAnnotation | None = None


@dataclass(frozen=True, slots=True)
class Markup:
    """Markup placeholder: {#b}, {/b}, {#img/}"""

    kind: MarkupKind
    name: str
    options: tuple[Option, ...] = ()


@dataclass(frozen=True, slots=True)
class Text:
    """Literal text with escapes already resolved."""

    value: str


type PatternElement = Text | Expression | Markup
type Pattern = tuple[PatternElement, ...]


@dataclass(frozen=True, slots=True)
class InputDeclaration:
    """.input {$name :function}"""

    name: str
    value: Expression


@dataclass(frozen=True, slots=True)
class LocalDeclaration:
    """.local $name = {expression}"""

    name: str
    value: Expression


@dataclass(frozen=True, slots=True)
class CatchallKey:
    """Variant key '*' matching any selector value."""


@dataclass(frozen=True, slots=True)
class Variant:
    """One branch of a .match: keys followed by a quoted pattern."""

    keys: tuple[Literal | CatchallKey, ...]
    value: Pattern


@dataclass(frozen=True, slots=True)
class PatternMessage:
    """Message with a single pattern."""

    declarations: tuple[InputDeclaration | LocalDeclaration, ...]
    pattern: Pattern


@dataclass(frozen=True, slots=True)
class SelectMessage:
    """Message that selects one variant by its selectors."""

    declarations: tuple[InputDeclaration | LocalDeclaration, ...]
    selectors: tuple[VariableRef, ...]
    variants: tuple[Variant, ...]


type Message = PatternMessage | SelectMessage
