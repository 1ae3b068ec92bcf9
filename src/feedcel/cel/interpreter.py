"""
Expression Interpreter

Evaluates a checked expression tree against an activation (a mapping of
variable names to values). Declared object values are plain mappings in
which an absent field is simply missing; selecting it is a runtime fault
while ``has()`` reports it as false.

Logical operators follow CEL's commutative error semantics: ``false && err``
is false and ``true || err`` is true regardless of operand order.
"""

import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping

from feedcel.cel import nodes
from feedcel.cel.functions import EvalFault, NoSuchFieldFault, Overload

_RUNTIME_ERRORS = (ArithmeticError, ValueError, TypeError, IndexError, KeyError, re.error)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def values_equal(left: Any, right: Any) -> bool:
    """Equality that never treats bool as a number."""
    if _is_bool(left) != _is_bool(right):
        return False
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, datetime) != isinstance(right, datetime):
        return False
    if isinstance(left, timedelta) != isinstance(right, timedelta):
        return False
    return left == right


class Interpreter:
    """Evaluates one program against one activation."""

    def __init__(self, references: Mapping[int, Overload], activation: Mapping[str, Any]):
        self.references = references
        self.activation = activation
        self._scopes: List[Dict[str, Any]] = []

    def evaluate(self, node: nodes.Node) -> Any:
        handler = getattr(self, f"_eval_{type(node).__name__.lower()}")
        return handler(node)

    def _eval_literal(self, node: nodes.Literal) -> Any:
        return node.value

    def _eval_ident(self, node: nodes.Ident) -> Any:
        for scope in reversed(self._scopes):
            if node.name in scope:
                return scope[node.name]
        if node.name not in self.activation:
            raise NoSuchFieldFault(f"no such attribute: {node.name}")
        return self.activation[node.name]

    def _eval_listliteral(self, node: nodes.ListLiteral) -> Any:
        return [self.evaluate(child) for child in node.elements]

    def _eval_select(self, node: nodes.Select) -> Any:
        operand = self.evaluate(node.operand)
        if not isinstance(operand, Mapping):
            raise EvalFault(f"cannot select field '{node.field}' from {type(operand).__name__}")
        if node.field not in operand:
            raise NoSuchFieldFault(f"no such key: {node.field}")
        return operand[node.field]

    def _eval_has(self, node: nodes.Has) -> Any:
        operand = self.evaluate(node.select.operand)
        if not isinstance(operand, Mapping):
            raise EvalFault(f"invalid type for has(): {type(operand).__name__}")
        return node.select.field in operand

    def _eval_index(self, node: nodes.Index) -> Any:
        operand = self.evaluate(node.operand)
        index = self.evaluate(node.index)
        if _is_bool(index) or not isinstance(index, int):
            raise EvalFault(f"invalid list index type: {type(index).__name__}")
        if not 0 <= index < len(operand):
            raise EvalFault(f"index out of range: {index}")
        return operand[index]

    def _invoke(self, node: nodes.Node, args: List[Any]) -> Any:
        chosen = self.references.get(node.id)
        if chosen is None:
            raise EvalFault("unresolved function call")
        try:
            return chosen.impl(*args)
        except EvalFault:
            raise
        except _RUNTIME_ERRORS as e:
            raise EvalFault(str(e) or type(e).__name__) from e

    def _eval_call(self, node: nodes.Call) -> Any:
        args = [self.evaluate(arg) for arg in node.args]
        if node.target is not None:
            args.insert(0, self.evaluate(node.target))
        return self._invoke(node, args)

    def _eval_unary(self, node: nodes.Unary) -> Any:
        operand = self.evaluate(node.operand)
        if node.op == "!":
            return not operand
        return self._invoke(node, [operand])

    def _logical(self, node: nodes.Binary, absorbing: bool) -> bool:
        fault = None
        for side in (node.left, node.right):
            try:
                value = self.evaluate(side)
            except EvalFault as e:
                fault = fault or e
                continue
            if value is absorbing:
                return absorbing
        if fault is not None:
            raise fault
        return not absorbing

    def _eval_binary(self, node: nodes.Binary) -> Any:
        if node.op == "&&":
            return self._logical(node, absorbing=False)
        if node.op == "||":
            return self._logical(node, absorbing=True)

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)
        if node.op == "==":
            return values_equal(left, right)
        if node.op == "!=":
            return not values_equal(left, right)
        if node.op == "in":
            return any(values_equal(left, element) for element in right)
        return self._invoke(node, [left, right])

    def _eval_conditional(self, node: nodes.Conditional) -> Any:
        if self.evaluate(node.condition):
            return self.evaluate(node.if_true)
        return self.evaluate(node.if_false)

    def _bind(self, node: nodes.Comprehension, element: Any) -> Any:
        self._scopes.append({node.var: element})
        try:
            return self.evaluate(node.body)
        finally:
            self._scopes.pop()

    def _quantify(self, node: nodes.Comprehension, elements, absorbing: bool) -> bool:
        # Same error absorption as && and ||
        fault = None
        for element in elements:
            try:
                value = self._bind(node, element)
            except EvalFault as e:
                fault = fault or e
                continue
            if value is absorbing:
                return absorbing
        if fault is not None:
            raise fault
        return not absorbing

    def _eval_comprehension(self, node: nodes.Comprehension) -> Any:
        elements = self.evaluate(node.range)
        if not isinstance(elements, (list, tuple)):
            raise EvalFault(f"'{node.macro}' requires a list, got {type(elements).__name__}")

        if node.macro in ("all", "exists"):
            return self._quantify(node, elements, absorbing=node.macro == "exists")

        results = [self._bind(node, element) for element in elements]

        if node.macro == "exists_one":
            return sum(1 for r in results if r) == 1
        if node.macro == "map":
            return results
        return [e for e, keep in zip(elements, results) if keep]


def interpret(root: nodes.Node, references: Mapping[int, Overload], activation: Mapping[str, Any]) -> Any:
    """
    Evaluate ``root`` with variables bound from ``activation``.

    Raises:
        EvalFault: If evaluation fails (absent field, overflow, bad argument, ...)
    """
    return Interpreter(references, activation).evaluate(root)
