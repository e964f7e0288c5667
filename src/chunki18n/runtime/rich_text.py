"""Rich-markup renderer - turns formatted parts into a node tree.

Markup tags in a template ({#link}Terms{/link}, {#br/}) are replaced by
nodes that caller-supplied handlers build from the tag's children:

    >>> from chunki18n.runtime.compiler import format_message_to_parts
    >>> parts = format_message_to_parts("en", "Read {#b}this{/b}")
    >>> parts_to_nodes(parts, {"b": lambda children: ("b", children)})
    ['Read ', ('b', ['this'])]

Rules:
    - Unknown open/close pairs pass their children through to the parent
    - A standalone tag without a handler is dropped
    - A close tag closes the innermost open frame; with none open it is ignored
    - Frames still open at the end are flattened into their parent, so
      malformed markup never loses text
    - Bidi isolation marks are structural and not emitted as text

Element nodes without an identity key get a synthetic ``rich-N`` key so
list rendering in a UI layer stays stable. Nodes opt in to this through
the RichNode protocol; anything else a handler returns is left as is.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Protocol, runtime_checkable

from chunki18n.enums import MarkupKind, NodeKind
from chunki18n.runtime.parts import BidiIsolationPart, MarkupPart, MessagePart

__all__ = ["Element", "RichChild", "RichNode", "TagHandler", "parts_to_nodes"]

type RichChild = str | Any
type TagHandler = Callable[[list[RichChild]], Any]


@runtime_checkable
class RichNode(Protocol):
    """Capability implemented by UI-layer nodes that carry an identity key."""

    @property
    def node_kind(self) -> NodeKind: ...

    @property
    def key(self) -> str | None: ...

    def with_key(self, key: str) -> RichNode: ...


@dataclass(frozen=True, slots=True)
class Element:
    """Minimal element node for handlers that have no UI framework at hand.

    Attributes:
        tag: Element name
        children: Rendered children
        props: Element attributes
        key: Identity key for list rendering
    """

    tag: str
    children: tuple[RichChild, ...] = ()
    props: Mapping[str, str] = field(default_factory=dict)
    key: str | None = None

    @property
    def node_kind(self) -> NodeKind:
        """Elements are always ELEMENT nodes."""
        return NodeKind.ELEMENT

    def with_key(self, key: str) -> Element:
        """Copy with an identity key."""
        return replace(self, key=key)


@dataclass(slots=True)
class _Frame:
    name: str
    children: list[RichChild]


def _keyed(node: Any, index: int) -> Any:
    if isinstance(node, RichNode) and node.node_kind is NodeKind.ELEMENT and node.key is None:
        return node.with_key(f"rich-{index}")
    return node


def parts_to_nodes(
    parts: Sequence[MessagePart], components: Mapping[str, TagHandler] | None = None
) -> list[RichChild]:
    """Render formatted parts into strings and handler-built nodes.

    Args:
        parts: Output of ``format_to_parts``
        components: Tag name -> handler(children) -> node

    Returns:
        Root-level children
    """
    components = components or {}
    root: list[RichChild] = []
    stack: list[_Frame] = []
    produced = 0

    def current() -> list[RichChild]:
        return stack[-1].children if stack else root

    def build(name: str, children: list[RichChild]) -> Any:
        nonlocal produced
        node = _keyed(components[name](children), produced)
        produced += 1
        return node

    for part in parts:
        if isinstance(part, BidiIsolationPart):
            continue
        if not isinstance(part, MarkupPart):
            current().append(part.value)
            continue

        if part.kind is MarkupKind.OPEN:
            stack.append(_Frame(part.name, []))
        elif part.kind is MarkupKind.STANDALONE:
            if part.name in components:
                current().append(build(part.name, []))
        else:
            if not stack:
                continue
            frame = stack.pop()
            if frame.name in components:
                current().append(build(frame.name, frame.children))
            else:
                current().extend(frame.children)

    while stack:
        frame = stack.pop()
        current().extend(frame.children)

    return root
