"""
Expression Type Checker

Walks a parsed expression against the declarations of an environment and
rejects anything that cannot be evaluated safely: undeclared identifiers,
fields missing from a declared object type, operands without a matching
overload and invalid literal arguments. The checker also resolves each call
and operator to one overload so the interpreter never dispatches on types.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from feedcel.cel import nodes
from feedcel.cel.functions import Overload
from feedcel.cel.types import BOOL, DOUBLE, DYN, INT, NULL, STRING, CelType, ListType, ObjectType, list_of, unify
from feedcel.core.exceptions import CompileError, ErrorCode

if TYPE_CHECKING:
    from feedcel.cel.env import Environment


@dataclass(frozen=True)
class CheckedExpression:
    """Result of a successful check."""
    root: nodes.Node
    output_type: CelType
    references: Mapping[int, Overload]


_LITERAL_TYPES = {bool: BOOL, int: INT, float: DOUBLE, str: STRING, type(None): NULL}


class Checker:
    """Type checks one expression. Not reusable across expressions."""

    def __init__(self, env: 'Environment', source: str):
        self.env = env
        self.source = source
        self.references: Dict[int, Overload] = {}
        self._scopes: List[Dict[str, CelType]] = []

    def check(self, root: nodes.Node) -> CheckedExpression:
        output_type = self._check(root)
        return CheckedExpression(root, output_type, MappingProxyType(dict(self.references)))

    def _error(self, node: nodes.Node, message: str, code: ErrorCode) -> CompileError:
        return CompileError(
            f"ERROR: <input>:{node.line}:{node.column}: {message}",
            error_code=code, expression=self.source, line=node.line, column=node.column,
        )

    def _check(self, node: nodes.Node) -> CelType:
        handler = getattr(self, f"_check_{type(node).__name__.lower()}")
        return handler(node)

    # Leaves

    def _check_literal(self, node: nodes.Literal) -> CelType:
        return _LITERAL_TYPES[type(node.value)]

    def _check_ident(self, node: nodes.Ident) -> CelType:
        for scope in reversed(self._scopes):
            if node.name in scope:
                return scope[node.name]
        declared = self.env.variables.get(node.name)
        if declared is None:
            raise self._error(node, f"undeclared reference to '{node.name}'",
                              ErrorCode.COMPILE_UNDECLARED_REFERENCE)
        return declared

    def _check_listliteral(self, node: nodes.ListLiteral) -> CelType:
        element: Optional[CelType] = DYN
        for i, child in enumerate(node.elements):
            child_type = self._check(child)
            if i == 0:
                element = child_type
            else:
                element = unify(element, child_type) or DYN
        return list_of(element)

    # Members

    def _field_type(self, node: nodes.Select) -> CelType:
        operand_type = self._check(node.operand)
        if operand_type is DYN:
            return DYN
        if not isinstance(operand_type, ObjectType):
            raise self._error(node, f"type '{operand_type}' does not support field selection",
                              ErrorCode.COMPILE_TYPE_MISMATCH)
        field_type = operand_type.field_type(node.field)
        if field_type is None:
            raise self._error(node, f"undefined field '{node.field}' on type '{operand_type}'",
                              ErrorCode.COMPILE_UNDECLARED_REFERENCE)
        return field_type

    def _check_select(self, node: nodes.Select) -> CelType:
        return self._field_type(node)

    def _check_has(self, node: nodes.Has) -> CelType:
        self._field_type(node.select)
        return BOOL

    def _check_index(self, node: nodes.Index) -> CelType:
        operand_type = self._check(node.operand)
        index_type = self._check(node.index)
        if operand_type is DYN:
            return DYN
        if not isinstance(operand_type, ListType):
            raise self._error(node, f"type '{operand_type}' does not support indexing",
                              ErrorCode.COMPILE_TYPE_MISMATCH)
        if not INT.is_assignable_from(index_type):
            raise self._error(node, f"list index must be int, got '{index_type}'",
                              ErrorCode.COMPILE_TYPE_MISMATCH)
        return operand_type.element

    # Calls and operators

    def _resolve(self, node: nodes.Node, name: str, args: List[nodes.Node], member: bool,
                 display: Optional[str] = None) -> CelType:
        decl = self.env.functions.get(name)
        if decl is None:
            raise self._error(node, f"undeclared reference to '{name}'",
                              ErrorCode.COMPILE_UNDECLARED_REFERENCE)

        arg_types = [self._check(arg) for arg in args]
        chosen = decl.resolve(arg_types, member=member)
        if chosen is None:
            signature = ", ".join(str(t) for t in arg_types)
            raise self._error(node, f"found no matching overload for '{display or name}' applied to '({signature})'",
                              ErrorCode.COMPILE_TYPE_MISMATCH)

        if chosen.literal_check is not None:
            values = [arg.value if isinstance(arg, nodes.Literal) else None for arg in args]
            try:
                chosen.literal_check(*values)
            except (ValueError, OverflowError, KeyError, re.error) as e:
                raise self._error(node, f"invalid argument to '{name}': {e}",
                                  ErrorCode.COMPILE_INVALID_ARGUMENT)

        self.references[node.id] = chosen
        if isinstance(chosen.result, ListType) and chosen.result.element is DYN and arg_types:
            merged = arg_types[0]
            for other in arg_types[1:]:
                merged = unify(merged, other) or chosen.result
            if isinstance(merged, ListType):
                return merged
        return chosen.result

    def _check_call(self, node: nodes.Call) -> CelType:
        if node.target is None:
            return self._resolve(node, node.function, list(node.args), member=False)
        return self._resolve(node, node.function, [node.target, *node.args], member=True)

    def _check_unary(self, node: nodes.Unary) -> CelType:
        if node.op == "!":
            operand_type = self._check(node.operand)
            if not BOOL.is_assignable_from(operand_type):
                raise self._error(node, f"found no matching overload for '!_' applied to '({operand_type})'",
                                  ErrorCode.COMPILE_TYPE_MISMATCH)
            return BOOL
        return self._resolve(node, "-_", [node.operand], member=False, display="-_")

    def _check_binary(self, node: nodes.Binary) -> CelType:
        if node.op in ("&&", "||"):
            for side in (node.left, node.right):
                side_type = self._check(side)
                if not BOOL.is_assignable_from(side_type):
                    raise self._error(side, f"operator '{node.op}' requires bool operands, got '{side_type}'",
                                      ErrorCode.COMPILE_TYPE_MISMATCH)
            return BOOL

        if node.op in ("==", "!="):
            left, right = self._check(node.left), self._check(node.right)
            numeric = left in (INT, DOUBLE) and right in (INT, DOUBLE)
            if not numeric and unify(left, right) is None:
                raise self._error(node, f"found no matching overload for '_{node.op}_' applied to '({left}, {right})'",
                                  ErrorCode.COMPILE_TYPE_MISMATCH)
            return BOOL

        if node.op == "in":
            element, container = self._check(node.left), self._check(node.right)
            if container is DYN:
                return BOOL
            if not isinstance(container, ListType) or unify(container.element, element) is None:
                raise self._error(node, f"found no matching overload for '@in' applied to '({element}, {container})'",
                                  ErrorCode.COMPILE_TYPE_MISMATCH)
            return BOOL

        name = f"_{node.op}_"
        return self._resolve(node, name, [node.left, node.right], member=False)

    def _check_conditional(self, node: nodes.Conditional) -> CelType:
        condition = self._check(node.condition)
        if not BOOL.is_assignable_from(condition):
            raise self._error(node.condition, f"conditional requires a bool condition, got '{condition}'",
                              ErrorCode.COMPILE_TYPE_MISMATCH)
        if_true, if_false = self._check(node.if_true), self._check(node.if_false)
        merged = unify(if_true, if_false)
        if merged is None:
            raise self._error(node, f"conditional branches have incompatible types '{if_true}' and '{if_false}'",
                              ErrorCode.COMPILE_TYPE_MISMATCH)
        return merged

    def _check_comprehension(self, node: nodes.Comprehension) -> CelType:
        range_type = self._check(node.range)
        if range_type is DYN:
            element = DYN
        elif isinstance(range_type, ListType):
            element = range_type.element
        else:
            raise self._error(node, f"'{node.macro}' requires a list receiver, got '{range_type}'",
                              ErrorCode.COMPILE_TYPE_MISMATCH)

        self._scopes.append({node.var: element})
        try:
            body = self._check(node.body)
        finally:
            self._scopes.pop()

        if node.macro == "map":
            return list_of(body)
        if not BOOL.is_assignable_from(body):
            raise self._error(node.body, f"'{node.macro}' predicate must be bool, got '{body}'",
                              ErrorCode.COMPILE_TYPE_MISMATCH)
        if node.macro == "filter":
            return list_of(element)
        return BOOL


def check(env: 'Environment', root: nodes.Node, source: str) -> CheckedExpression:
    """Type check ``root`` against ``env``."""
    return Checker(env, source).check(root)
