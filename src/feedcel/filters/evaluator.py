"""
Filter Evaluator

Runs one compiled program against one item and a shared ``now``. A false
result and a failed evaluation are never conflated: any runtime fault is
raised as an :class:`EvaluationError` identifying the item. Whether that
fault excludes the item or aborts the batch is decided by the caller.
"""

from datetime import datetime, timezone
from typing import Optional

from feedcel.cel import EvalFault, NoSuchFieldFault, Program
from feedcel.core.exceptions import ErrorCode, EvaluationError
from feedcel.item import Item


def evaluate(program: Program, item: Item, now: datetime, index: Optional[int] = None) -> bool:
    """
    Evaluate ``program`` with ``item`` and ``now`` bound.

    Args:
        program: Compiled predicate
        item: Item to test
        now: Batch timestamp; naive values are taken as UTC
        index: Position of the item in its batch, for error reporting

    Returns:
        Whether the item matches

    Raises:
        EvaluationError: If evaluation fails for this item
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    activation = {"item": item.to_activation(), "now": now}
    try:
        result = program.eval(activation)
    except NoSuchFieldFault as e:
        raise EvaluationError(
            f"{e} (field absent on this item)",
            error_code=ErrorCode.EVALUATION_NO_SUCH_FIELD,
            item_index=index, item_url=item.url, item_title=item.title, cause=e,
        ) from e
    except EvalFault as e:
        raise EvaluationError(
            str(e),
            item_index=index, item_url=item.url, item_title=item.title, cause=e,
        ) from e

    if not isinstance(result, bool):
        raise EvaluationError(
            f"expression produced {type(result).__name__}, not bool",
            item_index=index, item_url=item.url, item_title=item.title,
        )
    return result
