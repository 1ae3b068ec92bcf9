"""
Expression Parser

Parses filter expressions with a LALR grammar and converts the parse tree into
the node types in :mod:`feedcel.cel.nodes`. List macros (``exists``, ``all``,
...) and ``has()`` are expanded here, the same way CEL parsers do it, so the
checker and interpreter only ever see :class:`Comprehension` and :class:`Has`.
"""

import itertools
import re

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken, VisitError

from feedcel.cel import nodes
from feedcel.core.exceptions import CompileError, ErrorCode

GRAMMAR = r"""
?start: expr

?expr: or_expr
     | or_expr "?" or_expr ":" expr      -> conditional

?or_expr: and_expr
        | or_expr "||" and_expr          -> or_op

?and_expr: relation
         | and_expr "&&" relation        -> and_op

?relation: addition
         | relation "<" addition         -> lt
         | relation "<=" addition        -> le
         | relation ">" addition         -> gt
         | relation ">=" addition        -> ge
         | relation "==" addition        -> eq
         | relation "!=" addition        -> ne
         | relation "in" addition        -> in_op

?addition: multiplication
         | addition "+" multiplication   -> add
         | addition "-" multiplication   -> sub

?multiplication: unary
               | multiplication "*" unary -> mul
               | multiplication "/" unary -> div
               | multiplication "%" unary -> mod

?unary: member
      | "!" unary                        -> not_op
      | "-" unary                        -> neg

?member: primary
       | member "." IDENT                -> select
       | member "." IDENT "(" [args] ")" -> method_call
       | member "[" expr "]"             -> index

?primary: IDENT                          -> ident
        | IDENT "(" [args] ")"           -> global_call
        | "(" expr ")"
        | "[" [args] "]"                 -> list_literal
        | DOUBLE                         -> double_literal
        | INT                            -> int_literal
        | STRING                         -> string_literal
        | "true"                         -> true_literal
        | "false"                        -> false_literal
        | "null"                         -> null_literal

args: expr ("," expr)* ","?

IDENT: /[_a-zA-Z][_a-zA-Z0-9]*/
DOUBLE.2: /[0-9]+\.[0-9]+([eE][+-]?[0-9]+)?/ | /[0-9]+[eE][+-]?[0-9]+/
INT: /0[xX][0-9a-fA-F]+/ | /[0-9]+/
STRING: /"(?:[^"\\\n]|\\.)*"/ | /'(?:[^'\\\n]|\\.)*'/
COMMENT: /\/\/[^\n]*/

%import common.WS
%ignore WS
%ignore COMMENT
"""

MACROS = frozenset({"all", "exists", "exists_one", "map", "filter"})

_ESCAPES = {
    'a': '\a', 'b': '\b', 'f': '\f', 'n': '\n', 'r': '\r', 't': '\t', 'v': '\v',
    '\\': '\\', '"': '"', "'": "'", '`': '`', '?': '?',
}
_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|x[0-9a-fA-F]{2}|[0-7]{3}|.)", re.DOTALL)

_parser = Lark(GRAMMAR, parser="lalr", propagate_positions=True, maybe_placeholders=True)


def _unescape(body: str) -> str:
    def replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq[0] in 'uUx':
            return chr(int(seq[1:], 16))
        if seq[0].isdigit():
            return chr(int(seq, 8))
        if seq in _ESCAPES:
            return _ESCAPES[seq]
        raise ValueError(f"invalid escape sequence \\{seq}")
    return _ESCAPE_RE.sub(replace, body)


def _position(item) -> tuple:
    """Line/column of a token or tree (1-based)."""
    if isinstance(item, Token):
        return item.line or 1, item.column or 1
    if isinstance(item, nodes.Node):
        return item.line, item.column
    meta = getattr(item, 'meta', None)
    if meta is not None and not getattr(meta, 'empty', True):
        return meta.line, meta.column
    return 1, 1


_INT64_LIMIT = 2**63


class _MacroError(Exception):
    def __init__(self, message: str, line: int, column: int):
        super().__init__(message)
        self.line = line
        self.column = column


@v_args(meta=True, inline=True)
class _ToNodes(Transformer):
    """Turns the lark parse tree into :mod:`nodes` objects."""

    def __init__(self):
        super().__init__()
        self._ids = itertools.count(1)
        self._unsigned = {}

    def transform(self, tree):
        root = super().transform(tree)
        if self._unsigned:
            token = next(iter(self._unsigned.values()))
            raise _MacroError(f"integer literal {token} overflows int64", token.line, token.column)
        return root

    def _node(self, cls, meta, *args):
        line, column = (meta.line, meta.column) if not meta.empty else (1, 1)
        return cls(next(self._ids), line, column, *args)

    # Literals

    def int_literal(self, meta, token):
        value = int(token, 16) if token.lower().startswith("0x") else int(token)
        if value > _INT64_LIMIT:
            raise _MacroError(f"integer literal {token} overflows int64", token.line, token.column)
        node = self._node(nodes.Literal, meta, value)
        if value == _INT64_LIMIT:
            # only valid as the operand of a unary minus
            self._unsigned[node.id] = token
        return node

    def double_literal(self, meta, token):
        return self._node(nodes.Literal, meta, float(token))

    def string_literal(self, meta, token):
        try:
            value = _unescape(str(token)[1:-1])
        except ValueError as e:
            raise _MacroError(str(e), token.line, token.column)
        return self._node(nodes.Literal, meta, value)

    def true_literal(self, meta):
        return self._node(nodes.Literal, meta, True)

    def false_literal(self, meta):
        return self._node(nodes.Literal, meta, False)

    def null_literal(self, meta):
        return self._node(nodes.Literal, meta, None)

    def list_literal(self, meta, args):
        return self._node(nodes.ListLiteral, meta, tuple(args or ()))

    # Identifiers, members and calls

    def args(self, meta, *exprs):
        return list(exprs)

    def ident(self, meta, token):
        return self._node(nodes.Ident, meta, str(token))

    def select(self, meta, operand, name):
        return self._node(nodes.Select, meta, operand, str(name))

    def index(self, meta, operand, index):
        return self._node(nodes.Index, meta, operand, index)

    def global_call(self, meta, name, args):
        args = args or []
        if str(name) == "has":
            if len(args) != 1 or not isinstance(args[0], nodes.Select):
                raise _MacroError("has() requires a single field selection argument", name.line, name.column)
            return self._node(nodes.Has, meta, args[0])
        return self._node(nodes.Call, meta, str(name), None, tuple(args))

    def method_call(self, meta, target, name, args):
        args = args or []
        function = str(name)
        if function in MACROS:
            if len(args) != 2 or not isinstance(args[0], nodes.Ident):
                raise _MacroError(
                    f"{function}() requires an iteration variable and an expression, e.g. {function}(x, x > 0)",
                    name.line, name.column,
                )
            return self._node(nodes.Comprehension, meta, function, target, args[0].name, args[1])
        return self._node(nodes.Call, meta, function, target, tuple(args))

    # Operators

    def conditional(self, meta, condition, if_true, if_false):
        return self._node(nodes.Conditional, meta, condition, if_true, if_false)

    def not_op(self, meta, operand):
        return self._node(nodes.Unary, meta, "!", operand)

    def neg(self, meta, operand):
        if isinstance(operand, nodes.Literal) and type(operand.value) in (int, float):
            self._unsigned.pop(operand.id, None)
            if type(operand.value) is int and -operand.value >= _INT64_LIMIT:
                raise _MacroError(f"integer literal {-operand.value} overflows int64", *_position(operand))
            return self._node(nodes.Literal, meta, -operand.value)
        return self._node(nodes.Unary, meta, "-", operand)

    def _binary(op):
        def build(self, meta, left, right):
            return self._node(nodes.Binary, meta, op, left, right)
        return build

    or_op = _binary("||")
    and_op = _binary("&&")
    lt = _binary("<")
    le = _binary("<=")
    gt = _binary(">")
    ge = _binary(">=")
    eq = _binary("==")
    ne = _binary("!=")
    in_op = _binary("in")
    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    mod = _binary("%")

    del _binary


def _describe_unexpected(error: UnexpectedInput) -> str:
    if isinstance(error, UnexpectedEOF):
        return "unexpected end of expression"
    if isinstance(error, UnexpectedToken):
        if error.token.type == "$END":
            return "unexpected end of expression"
        expected = sorted(error.expected or ())
        hint = f" (expected one of: {', '.join(expected[:6])})" if expected else ""
        return f"unexpected token {str(error.token)!r}{hint}"
    if isinstance(error, UnexpectedCharacters):
        return f"unexpected character {error.char!r}"
    return "syntax error"


def parse(source: str) -> nodes.Node:
    """
    Parse expression source text.

    Raises:
        CompileError: If the text is not a well-formed expression
    """
    try:
        tree = _parser.parse(source)
    except UnexpectedInput as e:
        line = getattr(e, 'line', None)
        column = getattr(e, 'column', None)
        if line is None or line < 0:
            line, column = None, None
        location = f" at {line}:{column}" if line is not None else ""
        raise CompileError(
            f"Syntax error{location}: {_describe_unexpected(e)}",
            error_code=ErrorCode.COMPILE_SYNTAX,
            expression=source, line=line, column=column, cause=e,
        ) from e

    try:
        return _ToNodes().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, _MacroError):
            raise _macro_failure(source, e.orig_exc) from e.orig_exc
        raise
    except _MacroError as e:
        raise _macro_failure(source, e) from e


def _macro_failure(source: str, error: _MacroError) -> CompileError:
    return CompileError(
        f"Syntax error at {error.line}:{error.column}: {error}",
        error_code=ErrorCode.COMPILE_SYNTAX,
        expression=source, line=error.line, column=error.column, cause=error,
    )
