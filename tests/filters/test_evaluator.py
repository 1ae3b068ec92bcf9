"""
Tests for per-item evaluation.

A false result and a failed evaluation must never be conflated.
"""

from datetime import datetime, timedelta

import pytest

from feedcel.core.exceptions import ErrorCode, EvaluationError
from feedcel.filters import evaluate
from feedcel.item import Item


class TestEvaluate:
    """Test evaluate()."""

    def test_title_contains(self, env, fixed_now):
        program = env.compile('item.Title.contains("Go")')
        assert evaluate(program, Item(title="Learning Go"), fixed_now) is True
        assert evaluate(program, Item(title="Hello"), fixed_now) is False

    def test_tags_split(self, env, fixed_now):
        program = env.compile('item.Tags.split(",").exists(t, t.trim() == "go")')
        item = Item(categories=("rust", " go", " python"))
        assert item.tags == "rust, go, python"
        assert evaluate(program, item, fixed_now) is True

    def test_recency(self, env, fixed_now, make_item):
        item = make_item(published_ago=timedelta(hours=1))
        assert evaluate(env.compile('now - item.Published < duration("2h")'), item, fixed_now) is True
        assert evaluate(env.compile('now - item.Published < duration("30m")'), item, fixed_now) is False

    def test_naive_now_is_utc(self, env, fixed_now, make_item):
        item = make_item(published_ago=timedelta(hours=1))
        naive = fixed_now.replace(tzinfo=None)
        assert evaluate(env.compile('now - item.Published < duration("2h")'), item, naive) is True

    def test_absent_field_raises(self, env, fixed_now):
        program = env.compile('item.Author == "Alice"')
        item = Item(url="https://example.com/a", title="No author")

        with pytest.raises(EvaluationError) as exc_info:
            evaluate(program, item, fixed_now, index=3)

        error = exc_info.value
        assert error.error_code == ErrorCode.EVALUATION_NO_SUCH_FIELD
        assert error.item_index == 3
        assert error.item_url == "https://example.com/a"
        assert error.item_title == "No author"
        assert error.recoverable is True
        assert "Author" in error.message

    def test_absent_timestamp_raises(self, env, fixed_now):
        program = env.compile('now - item.Published < duration("2h")')
        with pytest.raises(EvaluationError):
            evaluate(program, Item(title="undated"), fixed_now)

    def test_runtime_fault_raises(self, env, fixed_now):
        program = env.compile('item.ContentLength / 0 == 1')
        with pytest.raises(EvaluationError) as exc_info:
            evaluate(program, Item(content="abc"), fixed_now)
        assert exc_info.value.error_code == ErrorCode.EVALUATION_FAILED

    def test_content_length_absent_without_content(self, env, fixed_now):
        program = env.compile('item.ContentLength > 0')
        with pytest.raises(EvaluationError):
            evaluate(program, Item(title="no body"), fixed_now)

    def test_describe_item(self):
        assert EvaluationError("x", item_title="T").describe_item() == "'T'"
        assert EvaluationError("x", item_url="u").describe_item() == "u"
        assert EvaluationError("x", item_index=2).describe_item() == "#2"

    def test_now_is_bound(self, env, fixed_now):
        program = env.compile('now == timestamp("2025-01-06T12:00:00Z")')
        assert evaluate(program, Item(), fixed_now) is True
        assert evaluate(program, Item(), datetime(2020, 1, 1)) is False
