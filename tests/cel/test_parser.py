"""
Tests for the expression parser.

Covers precedence, literals, macro expansion and syntax error reporting.
"""

import pytest

from feedcel.cel import nodes
from feedcel.cel.parser import parse
from feedcel.core.exceptions import CompileError, ErrorCode


class TestParse:
    """Test parse tree construction."""

    def test_and_binds_tighter_than_or(self):
        root = parse("a || b && c")
        assert isinstance(root, nodes.Binary)
        assert root.op == "||"
        assert root.right.op == "&&"

    def test_relation_binds_tighter_than_and(self):
        root = parse("x < 1 && y == 2")
        assert root.op == "&&"
        assert root.left.op == "<"
        assert root.right.op == "=="

    def test_member_call_and_select(self):
        root = parse('item.Title.contains("Go")')
        assert isinstance(root, nodes.Call)
        assert root.function == "contains"
        assert isinstance(root.target, nodes.Select)
        assert root.target.field == "Title"
        assert root.args[0].value == "Go"

    def test_global_call(self):
        root = parse('duration("2h")')
        assert isinstance(root, nodes.Call)
        assert root.target is None
        assert root.function == "duration"

    def test_literals(self):
        assert parse("42").value == 42
        assert parse("0x1F").value == 31
        assert parse("2.5").value == 2.5
        assert parse("true").value is True
        assert parse("false").value is False
        assert parse("null").value is None
        assert parse("-3").value == -3

    def test_int64_minimum_literal(self):
        root = parse("-9223372036854775808")
        assert isinstance(root, nodes.Literal)
        assert root.value == -2**63

    def test_string_escapes(self):
        assert parse(r'"a\nb"').value == "a\nb"
        assert parse(r"'it\'s'").value == "it's"
        assert parse(r'"é"').value == "é"

    def test_keyword_prefix_is_identifier(self):
        root = parse("trueish")
        assert isinstance(root, nodes.Ident)
        assert root.name == "trueish"

    def test_list_literal_and_in(self):
        root = parse('"go" in ["go", "rust"]')
        assert root.op == "in"
        assert isinstance(root.right, nodes.ListLiteral)
        assert len(root.right.elements) == 2

    def test_conditional(self):
        root = parse("a ? b : c")
        assert isinstance(root, nodes.Conditional)

    def test_exists_macro_expands_to_comprehension(self):
        root = parse('item.Categories.exists(t, t == "go")')
        assert isinstance(root, nodes.Comprehension)
        assert root.macro == "exists"
        assert root.var == "t"
        assert isinstance(root.range, nodes.Select)

    def test_has_macro(self):
        root = parse("has(item.Author)")
        assert isinstance(root, nodes.Has)
        assert root.select.field == "Author"

    def test_node_ids_are_unique(self):
        root = parse("a.b(c, d) && e[0] > 1")
        seen = []

        def walk(node):
            seen.append(node.id)
            for value in vars(node).values():
                if isinstance(value, nodes.Node):
                    walk(value)
                elif isinstance(value, tuple):
                    for child in value:
                        if isinstance(child, nodes.Node):
                            walk(child)

        walk(root)
        assert len(seen) == len(set(seen))

    def test_comments_and_whitespace_ignored(self):
        root = parse("a // trailing comment\n  && b")
        assert root.op == "&&"


class TestSyntaxErrors:
    """Test syntax error reporting."""

    @pytest.mark.parametrize("source", [
        "(item.Title",
        "item.Title.contains(\"Go\"",
        "item.",
        "&& true",
        "1 +",
        "",
    ])
    def test_malformed_expressions(self, source):
        with pytest.raises(CompileError) as exc_info:
            parse(source)
        assert exc_info.value.error_code == ErrorCode.COMPILE_SYNTAX
        assert exc_info.value.expression == source

    def test_error_reports_position(self):
        with pytest.raises(CompileError) as exc_info:
            parse("a &&\n  @")
        assert exc_info.value.line == 2
        assert "Syntax error" in exc_info.value.message

    def test_macro_requires_identifier(self):
        with pytest.raises(CompileError) as exc_info:
            parse("xs.exists(1, true)")
        assert "iteration variable" in exc_info.value.message

    def test_has_requires_selection(self):
        with pytest.raises(CompileError):
            parse("has(item)")

    def test_integer_literal_overflow(self):
        with pytest.raises(CompileError):
            parse("9223372036854775808")

    @pytest.mark.parametrize("source", [
        "9223372036854775808 + 1",
        "--9223372036854775808",
        "0x8000000000000000",
    ])
    def test_int64_limit_only_valid_negated(self, source):
        with pytest.raises(CompileError) as exc_info:
            parse(source)
        assert exc_info.value.error_code == ErrorCode.COMPILE_SYNTAX
        assert "overflows int64" in exc_info.value.message

    def test_invalid_escape(self):
        with pytest.raises(CompileError):
            parse(r'"\q"')
