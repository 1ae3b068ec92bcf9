"""
Tests for FilterResult and the per-item error handlers.
"""

import logging
from unittest.mock import patch

import pytest

from feedcel.core.exceptions import EvaluationError
from feedcel.filters import FilterResult, log_and_exclude, raise_on_error
from feedcel.item import Item


def make_result():
    items = [Item(title=f"item {i}") for i in range(4)]
    return FilterResult(items=items, included_indices=[0, 2], excluded_indices=[1, 3],
                        errors={3: EvaluationError("boom", item_index=3)}, expression="x")


class TestFilterResult:
    """Test the order-preserving partition."""

    def test_partitions(self):
        result = make_result()
        assert [i.title for i in result.included] == ["item 0", "item 2"]
        assert [i.title for i in result.excluded] == ["item 1", "item 3"]
        assert result.is_included(2)
        assert not result.is_included(3)

    def test_include_and_exclude_build_partition(self):
        result = FilterResult(items=[Item(title=f"item {i}") for i in range(3)])
        error = EvaluationError("boom", item_index=2)
        result.include(0)
        result.exclude(1)
        result.exclude(2, error)

        assert result.included_indices == [0]
        assert result.excluded_indices == [1, 2]
        assert result.errors == {2: error}
        assert result.is_included(0)
        assert not result.is_included(1)

    def test_membership_set_built_once(self):
        result = make_result()
        with patch('feedcel.filters.base.set', create=True) as fake_set:
            assert all(result.is_included(i) == (i in (0, 2)) for i in range(4))
        fake_set.assert_not_called()

    def test_membership_follows_direct_appends(self):
        result = make_result()
        assert not result.is_included(1)
        result.included_indices.append(1)
        assert result.is_included(1)

    def test_select_parallel_sequence(self):
        result = make_result()
        assert result.select(["a", "b", "c", "d"]) == ["a", "c"]

    def test_select_length_mismatch(self):
        with pytest.raises(ValueError):
            make_result().select(["a"])

    def test_summary(self):
        assert make_result().summary() == "2 matches"

    def test_to_dict(self):
        data = make_result().to_dict()
        assert data == {
            'expression': "x",
            'total': 4,
            'included': 2,
            'excluded': 2,
            'errors': {3: "boom"},
        }


class TestErrorHandlers:
    """Test the built-in error handlers."""

    def test_log_and_exclude(self, caplog):
        with caplog.at_level(logging.WARNING, logger="feedcel.filters.base"):
            log_and_exclude(EvaluationError("no such key: Author", item_title="T"))
        assert "Excluding item 'T'" in caplog.text

    def test_raise_on_error(self):
        error = EvaluationError("boom")
        with pytest.raises(EvaluationError) as exc_info:
            raise_on_error(error)
        assert exc_info.value is error
