"""Tests for the command-line entry point."""

from unittest.mock import patch

import pytest

from flowsim.cli import main


class TestMain:
    """Tests for main()."""

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        """--version prints the package version and exits cleanly."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "flowsim 0.1.0" in capsys.readouterr().out

    def test_runs_uvicorn_with_arguments(self) -> None:
        """Command-line options are passed through to uvicorn and logging."""
        with (
            patch("flowsim.cli.uvicorn.run") as run,
            patch("flowsim.cli.configure_logging") as configure,
        ):
            assert main(["--host", "0.0.0.0", "--port", "9000", "--reload"]) == 0

        configure.assert_called_once_with()
        run.assert_called_once_with(
            "flowsim.server.app:app", host="0.0.0.0", port=9000, reload=True
        )

    def test_defaults_from_settings(self) -> None:
        """Omitted options fall back to the settings defaults."""
        with (
            patch("flowsim.cli.uvicorn.run") as run,
            patch("flowsim.cli.configure_logging"),
        ):
            main([])
        kwargs = run.call_args.kwargs
        assert kwargs["reload"] is False
        assert isinstance(kwargs["port"], int)
