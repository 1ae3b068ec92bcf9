"""
Filtering Environment

An :class:`Environment` holds the declared variables, object types and
functions available to filter expressions. It is built once per process and
never mutated afterwards, so compiled :class:`Program` objects and the
environment itself can be shared freely between threads.
"""

import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from feedcel.cel import checker, parser
from feedcel.cel.functions import FunctionDecl, Overload, standard_library
from feedcel.cel.interpreter import interpret
from feedcel.cel.nodes import Node
from feedcel.cel.types import BOOL, PRIMITIVES, TIMESTAMP, CelType, ListType, ObjectType, list_of
from feedcel.core.exceptions import CompileError, ConfigurationError, ErrorCode

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[_a-zA-Z][_a-zA-Z0-9]*$")
_LIST_TYPE = re.compile(r"^list\((.+)\)$")

TypeSpec = Union[CelType, str]


@dataclass(frozen=True)
class Program:
    """
    A compiled, immutable predicate.

    Attributes:
        source: Expression text the program was compiled from
        root: Parsed and checked syntax tree
        references: Resolved overload for every call/operator node
        output_type: Static result type (always bool)
    """
    source: str
    root: Node
    references: Mapping[int, Overload]
    output_type: CelType

    def eval(self, activation: Mapping[str, Any]) -> Any:
        """
        Evaluate the program with the given variable bindings.

        Raises:
            EvalFault: If evaluation fails for these bindings
        """
        return interpret(self.root, self.references, activation)


class Environment:
    """Declared variables, object types and functions for expressions."""

    def __init__(self, variables: Mapping[str, CelType], object_types: Mapping[str, ObjectType],
                 functions: Mapping[str, FunctionDecl]):
        self.variables = MappingProxyType(dict(variables))
        self.object_types = MappingProxyType(dict(object_types))
        self.functions = MappingProxyType(dict(functions))

    @classmethod
    def build(cls, variables: Iterable[Tuple[str, TypeSpec]],
              object_types: Iterable[Tuple[str, Iterable[Tuple[str, TypeSpec]]]] = (),
              functions: Optional[Iterable[FunctionDecl]] = None) -> 'Environment':
        """
        Validate declarations and build an environment.

        Args:
            variables: ``(name, type)`` pairs bound at evaluation time
            object_types: ``(type_name, [(field, type), ...])`` declarations
            functions: Function declarations, defaults to the standard library

        Raises:
            ConfigurationError: If any declaration is malformed
        """
        declared_objects: Dict[str, ObjectType] = {}
        for type_name, fields in object_types:
            if type_name in declared_objects or type_name in PRIMITIVES:
                raise ConfigurationError(f"Duplicate type declaration: {type_name}",
                                         config_key="object_types", config_value=type_name)
            field_types: Dict[str, CelType] = {}
            for field_name, spec in fields:
                _require_identifier(field_name, "field")
                if field_name in field_types:
                    raise ConfigurationError(f"Duplicate field {field_name!r} on type {type_name}",
                                             config_key="object_types", config_value=field_name)
                field_types[field_name] = _resolve_type(spec, declared_objects)
            declared_objects[type_name] = ObjectType(type_name, field_types)

        declared_variables: Dict[str, CelType] = {}
        for name, spec in variables:
            _require_identifier(name, "variable")
            if name in declared_variables:
                raise ConfigurationError(f"Duplicate variable declaration: {name}",
                                         config_key="variables", config_value=name)
            declared_variables[name] = _resolve_type(spec, declared_objects)

        declared_functions: Dict[str, FunctionDecl] = {}
        seen_overloads = set()
        for decl in (standard_library() if functions is None else functions):
            if decl.name in declared_functions:
                raise ConfigurationError(f"Duplicate function declaration: {decl.name}",
                                         config_key="functions", config_value=decl.name)
            for candidate in decl.overloads:
                if candidate.overload_id in seen_overloads:
                    raise ConfigurationError(f"Conflicting overload id: {candidate.overload_id}",
                                             config_key="functions", config_value=candidate.overload_id)
                seen_overloads.add(candidate.overload_id)
            declared_functions[decl.name] = decl

        logger.debug("Built environment with %d variables, %d types, %d functions",
                     len(declared_variables), len(declared_objects), len(declared_functions))
        return cls(declared_variables, declared_objects, declared_functions)

    def compile(self, source: str) -> Program:
        """
        Compile expression text into a reusable program.

        Raises:
            CompileError: On syntax errors, undeclared references, type
                mismatches, invalid literal arguments or a non-bool result
        """
        root = parser.parse(source)
        checked = checker.check(self, root, source)
        if checked.output_type != BOOL:
            raise CompileError(
                f"expression must evaluate to bool, got '{checked.output_type}'",
                error_code=ErrorCode.COMPILE_NON_BOOLEAN, expression=source,
            )
        return Program(source, checked.root, checked.references, checked.output_type)

    def schema(self) -> Dict[str, Any]:
        """Declared variables and the fields of every declared object type."""
        return {
            "variables": {name: str(t) for name, t in self.variables.items()},
            "types": {
                name: {field: str(t) for field, t in obj.fields.items()}
                for name, obj in self.object_types.items()
            },
        }

    def function_names(self) -> List[str]:
        return sorted(name for name in self.functions if _IDENTIFIER.match(name))


def _require_identifier(name: str, kind: str) -> None:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ConfigurationError(f"Invalid {kind} name: {name!r}", config_key=kind, config_value=name)


def _resolve_type(spec: TypeSpec, objects: Mapping[str, ObjectType]) -> CelType:
    if isinstance(spec, CelType):
        if isinstance(spec, ObjectType) and spec.name not in objects:
            raise ConfigurationError(f"Undeclared object type: {spec.name}", config_key="types",
                                     config_value=spec.name)
        if isinstance(spec, ListType):
            _resolve_type(spec.element, objects)
        return spec
    if isinstance(spec, str):
        if spec in PRIMITIVES:
            return PRIMITIVES[spec]
        if spec in objects:
            return objects[spec]
        match = _LIST_TYPE.match(spec)
        if match:
            return list_of(_resolve_type(match.group(1).strip(), objects))
    raise ConfigurationError(f"Unknown type: {spec!r}", config_key="types", config_value=str(spec))


def new_env() -> Environment:
    """The standard filtering environment: ``item`` (feedcel.Item) and ``now`` (timestamp)."""
    from feedcel.item import ITEM_FIELDS, ITEM_TYPE_NAME

    return Environment.build(
        variables=[("item", ITEM_TYPE_NAME), ("now", TIMESTAMP)],
        object_types=[(ITEM_TYPE_NAME, ITEM_FIELDS)],
    )
