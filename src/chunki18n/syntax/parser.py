"""Recursive-descent parser for MessageFormat 2 templates.

Supported syntax:
    Simple message:   Hello {$name}!
    Escapes:          \\{ \\} \\\\ (and \\| inside quoted literals)
    Expressions:      {$x}  {|quoted|}  {42}  {$x :number minimumFractionDigits=2}
    Function only:    {:datetime}
    Markup:           {#link href=|/tos|}Terms{/link}  {#br/}
    Attributes:       {$x @translate=no} (parsed and ignored)
    Complex message:  .input {$count :number}
                      .local $n = {$count :integer}
                      .match $count
                      one {{{$count} item}}
                      *   {{{$count} items}}

Every parser has the signature ``parse_foo(cursor) -> ParseResult[Foo]`` and
raises MessageSyntaxError when the required construct is absent; the
compiler turns that into a raw-text echo of the template.

Python 3.13+. Zero external dependencies.
"""

from chunki18n.constants import MAX_DEPTH
from chunki18n.enums import MarkupKind
from chunki18n.syntax.ast import (
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
from chunki18n.syntax.cursor import WHITESPACE, Cursor, ParseResult

__all__ = ["parse_message"]

_KEYWORD_INPUT = ".input"
_KEYWORD_LOCAL = ".local"
_KEYWORD_MATCH = ".match"

# Characters that may follow a backslash.
_TEXT_ESCAPES = frozenset("\\{|}")


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_" or (ord(ch) > 0x7F and ch not in WHITESPACE)


def _is_name_char(ch: str) -> bool:
    return _is_name_start(ch) or ch.isdigit() or ch in "-."


def _at_keyword(cursor: Cursor, keyword: str) -> bool:
    if not cursor.starts_with(keyword):
        return False
    following = cursor.peek(len(keyword))
    return following is None or not _is_name_char(following)


def parse_name(cursor: Cursor) -> ParseResult[str]:
    """Parse name: name-start followed by name characters."""
    if cursor.is_eof or not _is_name_start(cursor.current):
        raise cursor.error("Expected name")
    start = cursor
    cursor = cursor.advance()
    while not cursor.is_eof and _is_name_char(cursor.current):
        cursor = cursor.advance()
    return ParseResult(start.slice_to(cursor.pos), cursor)


def parse_identifier(cursor: Cursor) -> ParseResult[str]:
    """Parse identifier with optional namespace: name or ns:name"""
    first = parse_name(cursor)
    if first.cursor.peek() == ":":
        second = parse_name(first.cursor.advance())
        return ParseResult(f"{first.value}:{second.value}", second.cursor)
    return first


def parse_variable(cursor: Cursor) -> ParseResult[VariableRef]:
    """Parse variable reference: $name"""
    cursor = cursor.expect("$")
    name = parse_name(cursor)
    return ParseResult(VariableRef(name.value), name.cursor)


def _parse_quoted_literal(cursor: Cursor) -> ParseResult[Literal]:
    cursor = cursor.expect("|")
    chars: list[str] = []
    while True:
        if cursor.is_eof:
            raise cursor.error("Unterminated quoted literal")
        ch = cursor.current
        if ch == "|":
            return ParseResult(Literal("".join(chars)), cursor.advance())
        if ch == "\\":
            escaped = cursor.peek(1)
            if escaped is None or escaped not in _TEXT_ESCAPES:
                raise cursor.error("Invalid escape sequence")
            chars.append(escaped)
            cursor = cursor.advance(2)
            continue
        chars.append(ch)
        cursor = cursor.advance()


def _parse_unquoted_literal(cursor: Cursor) -> ParseResult[Literal]:
    if cursor.is_eof or not (_is_name_char(cursor.current) or cursor.current == "-"):
        raise cursor.error("Expected literal")
    start = cursor
    while not cursor.is_eof and (_is_name_char(cursor.current) or cursor.current == "+"):
        cursor = cursor.advance()
    return ParseResult(Literal(start.slice_to(cursor.pos)), cursor)


def parse_literal(cursor: Cursor) -> ParseResult[Literal]:
    """Parse quoted |literal| or unquoted literal (name or number)."""
    if not cursor.is_eof and cursor.current == "|":
        return _parse_quoted_literal(cursor)
    return _parse_unquoted_literal(cursor)


def _parse_value(cursor: Cursor) -> ParseResult[Literal | VariableRef]:
    if not cursor.is_eof and cursor.current == "$":
        variable = parse_variable(cursor)
        return ParseResult(variable.value, variable.cursor)
    literal = parse_literal(cursor)
    return ParseResult(literal.value, literal.cursor)


def parse_options(cursor: Cursor) -> ParseResult[tuple[Option, ...]]:
    """Parse zero or more whitespace-separated name=value options."""
    options: list[Option] = []
    seen: set[str] = set()
    while True:
        probe = cursor.skip_whitespace()
        if probe.pos == cursor.pos or probe.is_eof or not _is_name_start(probe.current):
            return ParseResult(tuple(options), cursor)
        name = parse_identifier(probe)
        if name.value in seen:
            raise probe.error(f"Duplicate option '{name.value}'")
        seen.add(name.value)
        c = name.cursor.skip_whitespace().expect("=").skip_whitespace()
        value = _parse_value(c)
        options.append(Option(name.value, value.value))
        cursor = value.cursor


def _skip_attributes(cursor: Cursor) -> Cursor:
    # Attributes carry tooling hints only; formatting ignores them.
    while True:
        probe = cursor.skip_whitespace()
        if probe.is_eof or probe.current != "@":
            return cursor
        name = parse_identifier(probe.advance())
        cursor = name.cursor
        after = cursor.skip_whitespace()
        if not after.is_eof and after.current == "=":
            cursor = parse_literal(after.advance().skip_whitespace()).cursor


def parse_annotation(cursor: Cursor) -> ParseResult[FunctionAnnotation]:
    """Parse function annotation: :name options"""
    cursor = cursor.expect(":")
    name = parse_identifier(cursor)
    options = parse_options(name.cursor)
    return ParseResult(FunctionAnnotation(name.value, options.value), options.cursor)


def _parse_markup(cursor: Cursor) -> ParseResult[Markup]:
    kind = MarkupKind.OPEN if cursor.current == "#" else MarkupKind.CLOSE
    name = parse_identifier(cursor.advance())
    options = parse_options(name.cursor)
    cursor = _skip_attributes(options.cursor).skip_whitespace()
    if kind is MarkupKind.OPEN and not cursor.is_eof and cursor.current == "/":
        kind = MarkupKind.STANDALONE
        cursor = cursor.advance()
    cursor = cursor.expect("}")
    return ParseResult(Markup(kind, name.value, options.value), cursor)


def parse_placeholder(cursor: Cursor) -> ParseResult[Expression | Markup]:
    """Parse {expression} or {#markup}."""
    cursor = cursor.expect("{").skip_whitespace()
    if cursor.current in "#/":
        markup = _parse_markup(cursor)
        return ParseResult(markup.value, markup.cursor)

    arg: Literal | VariableRef | None = None
    function: FunctionAnnotation | None = None
    if cursor.current != ":":
        operand = _parse_value(cursor)
        arg = operand.value
        cursor = operand.cursor
        probe = cursor.skip_whitespace()
        if not probe.is_eof and probe.current == ":":
            if probe.pos == cursor.pos:
                raise probe.error("Expected whitespace before annotation")
            cursor = probe
    if not cursor.is_eof and cursor.current == ":":
        annotation = parse_annotation(cursor)
        function = annotation.value
        cursor = annotation.cursor
    cursor = _skip_attributes(cursor).skip_whitespace().expect("}")
    return ParseResult(Expression(arg, function), cursor)


def parse_pattern(cursor: Cursor, *, quoted: bool) -> ParseResult[Pattern]:
    """Parse text and placeholders.

    A quoted pattern stops before its closing '}}'; an unquoted one runs
    to end of input.
    """
    elements: list[PatternElement] = []
    text: list[str] = []
    depth = 0

    def flush() -> None:
        if text:
            elements.append(Text("".join(text)))
            text.clear()

    while True:
        if cursor.is_eof:
            if quoted:
                raise cursor.error("Unterminated quoted pattern")
            break
        ch = cursor.current
        if quoted and cursor.starts_with("}}"):
            break
        if ch == "{":
            flush()
            placeholder = parse_placeholder(cursor)
            if isinstance(placeholder.value, Markup):
                if placeholder.value.kind is MarkupKind.OPEN:
                    depth += 1
                    if depth > MAX_DEPTH:
                        raise cursor.error("Markup nesting too deep")
                elif placeholder.value.kind is MarkupKind.CLOSE:
                    depth = max(depth - 1, 0)
            elements.append(placeholder.value)
            cursor = placeholder.cursor
        elif ch == "}":
            raise cursor.error("Unescaped '}' in pattern")
        elif ch == "\\":
            escaped = cursor.peek(1)
            if escaped is None or escaped not in _TEXT_ESCAPES:
                raise cursor.error("Invalid escape sequence")
            text.append(escaped)
            cursor = cursor.advance(2)
        else:
            text.append(ch)
            cursor = cursor.advance()

    flush()
    return ParseResult(tuple(elements), cursor)


def _parse_quoted_pattern(cursor: Cursor) -> ParseResult[Pattern]:
    if not cursor.starts_with("{{"):
        raise cursor.error("Expected '{{'")
    pattern = parse_pattern(cursor.advance(2), quoted=True)
    return ParseResult(pattern.value, pattern.cursor.advance(2))


def _parse_declaration_expression(cursor: Cursor) -> ParseResult[Expression]:
    if cursor.is_eof or cursor.current != "{":
        raise cursor.error("Expected '{'")
    placeholder = parse_placeholder(cursor)
    if not isinstance(placeholder.value, Expression):
        raise cursor.error("Markup is not allowed in a declaration")
    return ParseResult(placeholder.value, placeholder.cursor)


def _parse_declarations(
    cursor: Cursor,
) -> ParseResult[tuple[InputDeclaration | LocalDeclaration, ...]]:
    declarations: list[InputDeclaration | LocalDeclaration] = []
    declared: set[str] = set()
    while True:
        cursor = cursor.skip_whitespace()
        if _at_keyword(cursor, _KEYWORD_INPUT):
            start = cursor
            expression = _parse_declaration_expression(
                cursor.advance(len(_KEYWORD_INPUT)).skip_whitespace()
            )
            if not isinstance(expression.value.arg, VariableRef):
                raise start.error(".input requires a variable expression")
            declaration: InputDeclaration | LocalDeclaration = InputDeclaration(
                expression.value.arg.name, expression.value
            )
            cursor = expression.cursor
        elif _at_keyword(cursor, _KEYWORD_LOCAL):
            start = cursor
            variable = parse_variable(cursor.advance(len(_KEYWORD_LOCAL)).skip_whitespace())
            c = variable.cursor.skip_whitespace().expect("=").skip_whitespace()
            expression = _parse_declaration_expression(c)
            declaration = LocalDeclaration(variable.value.name, expression.value)
            cursor = expression.cursor
        else:
            return ParseResult(tuple(declarations), cursor)

        if declaration.name in declared:
            raise start.error(f"Duplicate declaration of '${declaration.name}'")
        declared.add(declaration.name)
        declarations.append(declaration)


def _parse_variants(cursor: Cursor, selector_count: int) -> ParseResult[tuple[Variant, ...]]:
    variants: list[Variant] = []
    while True:
        cursor = cursor.skip_whitespace()
        if cursor.is_eof:
            break
        keys: list[Literal | CatchallKey] = []
        while not cursor.starts_with("{{"):
            if cursor.current == "*":
                keys.append(CatchallKey())
                cursor = cursor.advance()
            else:
                literal = parse_literal(cursor)
                keys.append(literal.value)
                cursor = literal.cursor
            cursor = cursor.skip_whitespace()
        if len(keys) != selector_count:
            raise cursor.error(f"Variant has {len(keys)} keys, expected {selector_count}")
        pattern = _parse_quoted_pattern(cursor)
        variants.append(Variant(tuple(keys), pattern.value))
        cursor = pattern.cursor

    if not variants:
        raise cursor.error("Expected at least one variant")
    if not any(all(isinstance(key, CatchallKey) for key in v.keys) for v in variants):
        raise cursor.error("Missing fallback variant (all keys '*')")
    return ParseResult(tuple(variants), cursor)


def _parse_complex_message(cursor: Cursor) -> Message:
    declarations = _parse_declarations(cursor)
    cursor = declarations.cursor

    if _at_keyword(cursor, _KEYWORD_MATCH):
        cursor = cursor.advance(len(_KEYWORD_MATCH))
        selectors: list[VariableRef] = []
        while True:
            probe = cursor.skip_whitespace()
            if probe.is_eof or probe.current != "$":
                break
            variable = parse_variable(probe)
            selectors.append(variable.value)
            cursor = variable.cursor
        if not selectors:
            raise cursor.error("Expected selector after .match")
        variants = _parse_variants(cursor, len(selectors))
        return SelectMessage(declarations.value, tuple(selectors), variants.value)

    pattern = _parse_quoted_pattern(cursor)
    rest = pattern.cursor.skip_whitespace()
    if not rest.is_eof:
        raise rest.error("Unexpected content after quoted pattern")
    return PatternMessage(declarations.value, pattern.value)


def parse_message(source: str) -> Message:
    """Parse a message template.

    Args:
        source: Template text

    Returns:
        PatternMessage or SelectMessage

    Raises:
        MessageSyntaxError: On any syntax or data-model error

    Example:
        >>> parse_message("Hi {$name}").pattern
        (Text(value='Hi '), Expression(arg=VariableRef(name='name'), function=None))
    """
    cursor = Cursor(source, 0)
    start = cursor.skip_whitespace()
    if (
        _at_keyword(start, _KEYWORD_INPUT)
        or _at_keyword(start, _KEYWORD_LOCAL)
        or _at_keyword(start, _KEYWORD_MATCH)
        or start.starts_with("{{")
    ):
        return _parse_complex_message(start)
    pattern = parse_pattern(cursor, quoted=False)
    return PatternMessage((), pattern.value)
