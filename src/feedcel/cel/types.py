"""
Expression Types

Static types known to the checker. Types are immutable value objects so they
can be compared, hashed and shared by every compiled program.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class CelType:
    """A named primitive type."""
    name: str

    def is_assignable_from(self, other: 'CelType') -> bool:
        """Whether a value of type ``other`` can be used where ``self`` is expected."""
        if self is DYN or other is DYN:
            return True
        return self == other

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ListType(CelType):
    """Homogeneous list type."""
    name: str = field(default="list", init=False)
    element: CelType = None

    def is_assignable_from(self, other: CelType) -> bool:
        if other is DYN:
            return True
        if not isinstance(other, ListType):
            return False
        return self.element.is_assignable_from(other.element)

    def __str__(self) -> str:
        return f"list({self.element})"


@dataclass(frozen=True)
class ObjectType(CelType):
    """A declared message type with a fixed set of typed fields."""
    fields: Mapping[str, CelType] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'fields', MappingProxyType(dict(self.fields)))

    def field_type(self, name: str) -> Optional[CelType]:
        return self.fields.get(name)


BOOL = CelType("bool")
INT = CelType("int")
DOUBLE = CelType("double")
STRING = CelType("string")
NULL = CelType("null_type")
TIMESTAMP = CelType("google.protobuf.Timestamp")
DURATION = CelType("google.protobuf.Duration")
DYN = CelType("dyn")

NUMERIC = (INT, DOUBLE)

PRIMITIVES = {
    t.name: t for t in (BOOL, INT, DOUBLE, STRING, NULL, TIMESTAMP, DURATION, DYN)
}
# Short aliases accepted in declarations
PRIMITIVES.update({"timestamp": TIMESTAMP, "duration": DURATION, "null": NULL})


def list_of(element: CelType) -> ListType:
    return ListType(element=element)


def unify(left: CelType, right: CelType) -> Optional[CelType]:
    """Most specific type both operands conform to, or None when incompatible."""
    if left is DYN:
        return right
    if right is DYN:
        return left
    if isinstance(left, ListType) and isinstance(right, ListType):
        element = unify(left.element, right.element)
        return list_of(element) if element is not None else None
    if left == right:
        return left
    return None
