"""
Tests for the filter, serve and interactive commands.

Commands run through Typer's CliRunner against a local feed file, so nothing
is fetched over the network.
"""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from feedcel import __version__
from feedcel.cli.main import app as main_app


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep stray config files and FEEDCEL_* variables out of the commands."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    for name in ("FEEDCEL_FORMAT", "FEEDCEL_ON_ERROR", "FEEDCEL_DEFAULT_EXPRESSION", "FEEDCEL_SHOW_EXCLUDED"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.cli
class TestFilterCommand:
    """Test the filter command."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_filter_with_expression(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'item.Title.contains("Go")'])

        assert result.exit_code == 0
        assert "Included Learning Go" in result.output
        assert "Excluded Hello" in result.output
        assert "Filtered 2 → 1 items" in result.output

    def test_hide_excluded(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'item.Title == "Hello"',
                                               '--hide-excluded'])

        assert result.exit_code == 0
        assert "Included Hello" in result.output
        assert "Excluded" not in result.output

    def test_evaluation_error_listed(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'item.Author == "Alice"'])

        assert result.exit_code == 0
        assert "Included Learning Go" in result.output
        assert "Error    Hello" in result.output
        assert "Filtered 2 → 1 items" in result.output

    def test_prompts_until_expression_compiles(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file)],
                                    input='\n1 +\nitem.Title == "Hello"\n')

        assert result.exit_code == 0
        assert "Expression cannot be empty" in result.output
        assert "ERROR: <input>:1:" in result.output
        assert "Included Hello" in result.output

    def test_compile_error(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'item.Nope'])

        assert result.exit_code == 1
        assert "Compile Undeclared Reference" in result.output
        assert "^" in result.output
        assert "Included" not in result.output

    def test_missing_feed_file(self, tmp_path):
        result = self.runner.invoke(main_app, ['filter', '-f', str(tmp_path / "absent.xml"), '-e', "true"])

        assert result.exit_code == 1
        assert "File Not Found" in result.output

    def test_feed_option_required(self):
        result = self.runner.invoke(main_app, ['filter', '-e', "true"])
        assert result.exit_code != 0

    @pytest.mark.parametrize("output_format,marker", [
        ("json", b'"items"'),
        ("rss", b"<rss"),
        ("atom", b"<feed"),
    ])
    def test_writes_output_file(self, rss_file, tmp_path, output_format, marker):
        target = tmp_path / f"out.{output_format}"
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'item.Title == "Hello"',
                                               '--format', output_format, '-o', str(target)])

        assert result.exit_code == 0
        assert f"Wrote {output_format} feed" in result.output
        assert marker in target.read_bytes()

    def test_output_contains_only_matches(self, rss_file, tmp_path):
        target = tmp_path / "out.json"
        self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'has(item.Author)', '-o', str(target)])

        document = json.loads(target.read_bytes())
        assert [item['title'] for item in document['items']] == ["Learning Go"]

    @pytest.mark.parametrize("output_format,extension", [
        ("json", ".json"),
        ("rss", ".xml"),
    ])
    def test_output_file_gets_format_extension(self, rss_file, tmp_path, output_format, extension):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', "true",
                                               '--format', output_format, '-o', str(tmp_path / "recent")])

        assert result.exit_code == 0
        assert (tmp_path / f"recent{extension}").exists()
        assert not (tmp_path / "recent").exists()

    @pytest.mark.parametrize("target", ["missing/out.json", "."])
    def test_unwritable_output_file(self, rss_file, tmp_path, target):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', "true",
                                               '-o', str(tmp_path / target)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Output Write Failed" in result.output
        assert "Traceback" not in result.output

    def test_abort_on_error(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', 'item.Author == "Alice"',
                                               '--on-error', "abort"])
        assert result.exit_code == 1

    def test_invalid_config_value(self, rss_file):
        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', "true", '--on-error', "ignore"])
        assert result.exit_code == 1

    def test_config_file_default_format(self, rss_file, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("output:\n  default_format: atom\n")
        target = tmp_path / "out.xml"

        result = self.runner.invoke(main_app, ['filter', '-f', str(rss_file), '-e', "true", '-c', str(config_file),
                                               '-o', str(target)])

        assert result.exit_code == 0
        assert b"<feed" in target.read_bytes()


@pytest.mark.cli
class TestMainApp:
    """Test the top-level application."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(main_app, ['--version'])
        assert result.exit_code == 0
        assert f"feedcel version {__version__}" in result.output

    def test_help_lists_commands(self):
        result = self.runner.invoke(main_app, ['--help'])
        assert result.exit_code == 0
        for command in ("filter", "serve", "interactive"):
            assert command in result.output

    @patch('feedcel.cli.commands.serve.uvicorn.run')
    def test_serve(self, mock_run):
        result = self.runner.invoke(main_app, ['serve', '--host', "0.0.0.0", '--port', "9090",
                                               '--compile-error-status', "400"])

        assert result.exit_code == 0
        kwargs = mock_run.call_args.kwargs
        assert kwargs['host'] == "0.0.0.0"
        assert kwargs['port'] == 9090
        app = mock_run.call_args.args[0]
        assert app.state.config.server.compile_error_status == 400

    @patch('feedcel.cli.commands.interactive.asyncio.run')
    def test_interactive_fetches_once(self, mock_asyncio_run, rss_file):
        with patch('feedcel.cli.commands.interactive.InteractiveShell') as mock_shell:
            result = self.runner.invoke(main_app, ['interactive', '-f', str(rss_file)])

        assert result.exit_code == 0
        session = mock_shell.call_args.args[0]
        assert len(session.items) == 2
        assert session.history[0].summary == "2 matches"

    def test_interactive_missing_feed(self, tmp_path):
        result = self.runner.invoke(main_app, ['interactive', '-f', str(tmp_path / "absent.xml")])
        assert result.exit_code == 1
