"""
Filter Results and Error Handlers

Defines the order-preserving partition produced by filtering a batch of items
and the pluggable per-item error handlers that decide whether an evaluation
fault excludes one item or aborts the batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, TypeVar

from feedcel.core.exceptions import EvaluationError
from feedcel.item import Item

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Receives each per-item evaluation fault. Returning excludes the item and
# continues the batch; raising aborts it.
ErrorHandler = Callable[[EvaluationError], None]


def log_and_exclude(error: EvaluationError) -> None:
    """Default handler: log the fault at WARNING and keep going."""
    logger.warning(f"Excluding item {error.describe_item()}: {error.message}")


def raise_on_error(error: EvaluationError) -> None:
    """Strict handler: abort the batch on the first evaluation fault."""
    raise error


@dataclass
class FilterResult:
    """
    Partition of one item batch by a predicate.

    Attributes:
        items: The input items, in original order
        included_indices: Indices of matching items, ascending
        excluded_indices: Indices of non-matching or faulted items, ascending
        errors: Evaluation fault per excluded index, where one occurred
        expression: Source text of the predicate that was applied
    """
    items: List[Item]
    included_indices: List[int] = field(default_factory=list)
    excluded_indices: List[int] = field(default_factory=list)
    errors: Dict[int, EvaluationError] = field(default_factory=dict)
    expression: str = "true"
    _included: Set[int] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._included = set(self.included_indices)

    def include(self, index: int) -> None:
        self.included_indices.append(index)
        self._included.add(index)

    def exclude(self, index: int, error: Optional[EvaluationError] = None) -> None:
        self.excluded_indices.append(index)
        if error is not None:
            self.errors[index] = error

    @property
    def included(self) -> List[Item]:
        return [self.items[i] for i in self.included_indices]

    @property
    def excluded(self) -> List[Item]:
        return [self.items[i] for i in self.excluded_indices]

    def is_included(self, index: int) -> bool:
        # resync after direct appends to included_indices
        if len(self._included) != len(self.included_indices):
            self._included = set(self.included_indices)
        return index in self._included

    def select(self, parallel: Sequence[T]) -> List[T]:
        """Project a sequence parallel to ``items`` (e.g. raw entries) onto the included partition."""
        if len(parallel) != len(self.items):
            raise ValueError(f"expected {len(self.items)} elements, got {len(parallel)}")
        return [parallel[i] for i in self.included_indices]

    def summary(self) -> str:
        return f"{len(self.included_indices)} matches"

    def to_dict(self) -> Dict[str, object]:
        return {
            'expression': self.expression,
            'total': len(self.items),
            'included': len(self.included_indices),
            'excluded': len(self.excluded_indices),
            'errors': {index: error.message for index, error in self.errors.items()},
        }
