"""
Expression syntax tree.

Every node carries a parser-assigned ``id`` that is unique within one parsed
expression; the checker keys its overload references by it.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple


@dataclass(frozen=True)
class Node:
    id: int
    line: int
    column: int


@dataclass(frozen=True)
class Literal(Node):
    value: Any


@dataclass(frozen=True)
class Ident(Node):
    name: str


@dataclass(frozen=True)
class Select(Node):
    operand: Node
    field: str


@dataclass(frozen=True)
class Call(Node):
    """Global call (``target`` is None) or receiver-style method call."""
    function: str
    target: Optional[Node]
    args: Tuple[Node, ...]


@dataclass(frozen=True)
class Index(Node):
    operand: Node
    index: Node


@dataclass(frozen=True)
class ListLiteral(Node):
    elements: Tuple[Node, ...]


@dataclass(frozen=True)
class Unary(Node):
    op: str  # "!" or "-"
    operand: Node


@dataclass(frozen=True)
class Binary(Node):
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Conditional(Node):
    condition: Node
    if_true: Node
    if_false: Node


@dataclass(frozen=True)
class Has(Node):
    """``has(x.f)`` presence test."""
    select: Select


@dataclass(frozen=True)
class Comprehension(Node):
    """Expanded list macro: ``range.macro(var, body)``."""
    macro: str
    range: Node
    var: str
    body: Node
