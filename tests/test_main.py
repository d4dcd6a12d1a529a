"""Tests for CLI argument handling in main.py."""
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from confstream.errors import FatalStatusError
from confstream.main import main


class TestCLIArguments:
    """Tests for command-line argument validation."""

    def test_missing_url_exits_with_code_2(self):
        """Test that a missing URL gives a usage error."""
        runner = CliRunner()
        result = runner.invoke(main, [], env={"CONFSTREAM_URL": None})
        assert result.exit_code == 2
        assert "url" in result.output.lower()

    def test_verbose_and_quiet_exits_with_code_2(self):
        """Test that --verbose and --quiet cannot be combined."""
        runner = CliRunner()
        result = runner.invoke(main, ["http://x.test/sse", "--verbose", "--quiet"])
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_negative_retries_exits_with_code_2(self):
        """Test that --max-retries rejects negative numbers."""
        runner = CliRunner()
        result = runner.invoke(main, ["http://x.test/sse", "--max-retries", "-1"])
        assert result.exit_code == 2

    def test_bad_header_exits_with_code_2(self):
        """Test that --header requires NAME:VALUE."""
        runner = CliRunner()
        result = runner.invoke(main, ["http://x.test/sse", "--header", "novalue"])
        assert result.exit_code == 2
        assert "NAME:VALUE" in result.output

    def test_inconsistent_delays_exit_with_code_2(self):
        """Test that a base delay above the max delay is rejected."""
        runner = CliRunner()
        result = runner.invoke(
            main, ["http://x.test/sse", "--base-delay", "10", "--max-delay", "1"]
        )
        assert result.exit_code == 2
        assert "base_delay" in result.output

    def test_help_exits_with_code_0(self):
        """Test that --help exits cleanly with code 0."""
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--max-retries" in result.output


class TestCLIRun:
    """Tests for running the listener from the CLI."""

    def test_options_reach_listener_config(self):
        """Test that options and env vars are mapped onto ListenerConfig."""
        runner = CliRunner()
        with patch("confstream.client.run_client", new_callable=AsyncMock) as mock_run, \
            patch("confstream.main.configure_logging"):
            result = runner.invoke(
                main,
                ["--max-retries", "7", "--header", "Authorization: Bearer abc"],
                env={"CONFSTREAM_URL": "http://x.test/sse", "CONFSTREAM_BASE_DELAY": "0.5"},
            )
        assert result.exit_code == 0, result.output
        url, config = mock_run.call_args.args
        assert url == "http://x.test/sse"
        assert config.max_retries == 7
        assert config.base_delay == 0.5
        assert config.headers == {"Authorization": "Bearer abc"}

    def test_terminal_error_exits_with_code_1(self):
        """Test that a terminal error is reported and exits with code 1."""
        runner = CliRunner()
        with patch("confstream.client.run_client", new_callable=AsyncMock) as mock_run, \
            patch("confstream.main.configure_logging"):
            mock_run.side_effect = FatalStatusError(403)
            result = runner.invoke(main, ["http://x.test/sse"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "403" in result.output

    def test_headers_from_env_one_per_line(self):
        """Test CONFSTREAM_HEADER accepts several headers with spaces in values."""
        runner = CliRunner()
        with patch("confstream.client.run_client", new_callable=AsyncMock) as mock_run, \
            patch("confstream.main.configure_logging"):
            result = runner.invoke(
                main,
                ["http://x.test/sse"],
                env={"CONFSTREAM_HEADER": "Authorization: Bearer abc\nX-Tenant: blue\n"},
            )
        assert result.exit_code == 0, result.output
        config = mock_run.call_args.args[1]
        assert config.headers == {"Authorization": "Bearer abc", "X-Tenant": "blue"}

    def test_quiet_from_env(self):
        """Test CONFSTREAM_QUIET selects quiet logging."""
        runner = CliRunner()
        with patch("confstream.client.run_client", new_callable=AsyncMock), \
            patch("confstream.main.configure_logging") as mock_logging:
            result = runner.invoke(
                main, ["http://x.test/sse"], env={"CONFSTREAM_QUIET": "1"}
            )
        assert result.exit_code == 0, result.output
        assert mock_logging.call_args.kwargs["quiet"] is True
