"""
Tests for the interactive session and shell.
"""

from unittest.mock import Mock

import pytest

from feedcel.cli.interactive import (
    COMPILE_FAILED,
    ERROR,
    EXCLUDED,
    MATCH,
    InteractiveSession,
    InteractiveShell,
    record_evaluation_error,
)
from feedcel.pipeline import FilterPipeline


@pytest.fixture
def session(rss_items, fixed_now):
    pipeline = FilterPipeline(error_handler=record_evaluation_error)
    return InteractiveSession(rss_items, pipeline=pipeline, clock=lambda: fixed_now)


@pytest.fixture
def shell(session):
    shell = InteractiveShell(session, source="feed.xml")
    shell.console = Mock()
    return shell


class TestInteractiveSession:
    """Test expression history over a fixed item set."""

    def test_seeded_with_true(self, session):
        assert len(session.history) == 1
        assert session.history[0].expression == "true"
        assert session.history[0].summary == "2 matches"
        assert session.selected_index == 0

    def test_submit_records_match_count(self, session):
        entry = session.submit('item.Title.contains("Go")')

        assert entry.summary == "1 matches"
        assert entry.valid
        assert session.selected is entry
        assert len(session.history) == 2

    def test_every_submission_appends(self, session):
        for _ in range(3):
            session.submit("true")
        assert len(session.history) == 4

    def test_blank_input_ignored(self, session):
        assert session.submit("   ") is None
        assert len(session.history) == 1

    def test_compile_error_placeholder(self, session):
        entry = session.submit("item.Nope")

        assert not entry.valid
        assert entry.summary == COMPILE_FAILED
        assert entry.program is None
        assert entry.result is None
        assert session.selected is entry

    @pytest.mark.parametrize("expression", [
        'now - item.Published < duration("99999999999h")',
        'item.Published > timestamp("0001-01-01T00:00:00+01:00")',
    ])
    def test_out_of_range_literal_keeps_session(self, session, expression):
        entry = session.submit(expression)

        assert not entry.valid
        assert entry.summary == COMPILE_FAILED
        follow_up = session.submit("true")
        assert follow_up.summary == "2 matches"
        assert len(session.history) == 3

    def test_history_entries_unchanged(self, session):
        first = session.history[0]
        session.submit("false")
        session.submit("1 +")
        assert session.history[0] is first
        assert first.summary == "2 matches"

    def test_select(self, session):
        session.submit("false")
        entry = session.select(0)
        assert entry.expression == "true"
        assert session.selected_index == 0

    @pytest.mark.parametrize("index", [-1, 5])
    def test_select_out_of_range(self, session, index):
        with pytest.raises(IndexError):
            session.select(index)

    def test_detail(self, session):
        session.submit('item.Author == "Alice"')
        outcomes = [(item.title, status) for item, status, _ in session.detail()]
        assert outcomes == [("Learning Go", MATCH), ("Hello", ERROR)]

        session.submit('item.Title == "Hello"')
        assert [status for _, status, _ in session.detail()] == [EXCLUDED, MATCH]

    def test_detail_of_failed_entry(self, session):
        session.submit("1 +")
        assert session.detail() == []

    def test_toggles(self, session):
        assert session.toggle_detail() is True
        assert session.toggle_detail() is False
        assert session.toggle_schema() is True

    def test_valid_expressions(self, session):
        session.submit("false")
        session.submit("item.Nope")
        session.submit('has(item.Author)')
        assert [entry.expression for entry in session.valid_expressions()] == ["true", "false", "has(item.Author)"]

    def test_clock_sampled_per_submission(self, rss_items, fixed_now):
        clock = Mock(return_value=fixed_now)
        session = InteractiveSession(rss_items, pipeline=FilterPipeline(), clock=clock)
        session.submit("now > item.Published")
        assert clock.call_count == 2

    def test_schema(self, session):
        schema = session.schema()
        assert set(schema["variables"]) == {"item", "now"}


class TestInteractiveShell:
    """Test line handling in the shell."""

    def test_expression_submitted(self, shell, session):
        assert shell.handle_input('item.Title == "Hello"') is False
        assert session.selected.summary == "1 matches"

    @pytest.mark.parametrize("line", [":quit", ":exit", ":q", ":QUIT"])
    def test_quit(self, shell, line):
        assert shell.handle_input(line) is True

    def test_select_command(self, shell, session):
        session.submit("false")
        shell.handle_input(":select 0")
        assert session.selected_index == 0

    @pytest.mark.parametrize("argument", ["x", "", "9"])
    def test_select_bad_argument(self, shell, session, argument):
        shell.handle_input(f":select {argument}")
        assert session.selected_index == 0
        assert shell.console.print.called

    def test_detail_and_schema_toggle(self, shell, session):
        shell.handle_input(":detail")
        shell.handle_input(":schema")
        assert session.show_detail
        assert session.show_schema

    def test_unknown_command(self, shell, session):
        assert shell.handle_input(":frobnicate") is False
        assert len(session.history) == 1
        printed = " ".join(str(call.args[0]) for call in shell.console.print.call_args_list)
        assert "Unknown command" in printed

    @pytest.mark.parametrize("line", [":history", ":help"])
    def test_listing_commands(self, shell, line):
        assert shell.handle_input(line) is False
        assert shell.console.print.called

    def test_completer_words(self, shell):
        words = shell.completer.words
        assert "item.Title" in words
        assert "now" in words
        assert ":history" in words

    def test_goodbye_lists_valid_expressions(self, shell, session):
        session.submit("item.Nope")
        session.submit("false")
        shell._show_goodbye()

        panel = shell.console.print.call_args.args[0]
        assert "true\n\t[2 matches]" in panel.renderable
        assert "false\n\t[0 matches]" in panel.renderable
        assert "item.Nope" not in panel.renderable
