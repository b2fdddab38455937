"""Tests for the vischeck CLI entry point.

``create_driver`` and ``SessionManager`` collaborators are patched so
the CLI runs without a display or network.
"""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock, patch

import pytest

from vischeck.config.settings import API_KEY_ENV_VAR, Settings
from vischeck.core.session_manager import SessionManager
from vischeck.exceptions import ServiceError
from vischeck.main import build_manager, main
from vischeck.models.geometry import RectangleSize
from vischeck.models.session import MatchResult, TestResults


class TestBuildManager:
    """Tests for the build_manager factory."""

    def test_overrides_applied(self) -> None:
        """API key and server URL override the base settings."""
        driver = MagicMock()
        driver.get_viewport_size.return_value = RectangleSize(10, 10)
        manager = build_manager(
            api_key="k",
            server_url="https://vis.example.test",
            settings=Settings(match_timeout_seconds=0),
            driver=driver,
        )
        assert isinstance(manager, SessionManager)
        assert manager.api_key == "k"
        assert manager.server_url == "https://vis.example.test"
        assert manager.match_timeout == 0


@pytest.fixture()
def desktop_driver() -> Iterator[MagicMock]:
    """Patch the desktop driver factory used by the CLI."""
    driver = MagicMock()
    with patch("vischeck.main.create_driver", return_value=driver):
        yield driver


class TestMain:
    """Tests for the main() CLI function."""

    def test_missing_api_key_exits(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without an API key the CLI exits with status 1."""
        monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
        with pytest.raises(SystemExit) as info:
            main(["--app", "A", "--test", "T"])
        assert info.value.code == 1

    def test_passed_run_exits_zero(
        self, desktop_driver: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A passing check prints a summary and exits 0."""
        manager = MagicMock()
        manager.check_window.return_value = MatchResult(as_expected=True)
        manager.close.return_value = TestResults(steps=1, matches=1, url="https://r.test")
        with patch("vischeck.main.build_manager", return_value=manager):
            with pytest.raises(SystemExit) as info:
                main(["--app", "A", "--test", "T", "--tag", "home", "-k", "key"])
        assert info.value.code == 0
        manager.open.assert_called_once_with("A", "T")
        manager.check_window.assert_called_once_with("home")
        manager.close.assert_called_once_with(throw_on_failure=False)
        out = capsys.readouterr().out
        assert "PASSED" in out
        assert "https://r.test" in out
        desktop_driver.close.assert_called_once()

    def test_failed_run_exits_one(
        self, desktop_driver: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A failed test exits 1."""
        manager = MagicMock()
        manager.close.return_value = TestResults(steps=1, mismatches=1)
        with patch("vischeck.main.build_manager", return_value=manager):
            with pytest.raises(SystemExit) as info:
                main(["-a", "A", "-t", "T", "-k", "key"])
        assert info.value.code == 1
        assert "FAILED" in capsys.readouterr().out

    def test_service_error_exits_one(self, desktop_driver: MagicMock) -> None:
        """A service failure is reported and the test aborted."""
        manager = MagicMock()
        manager.check_window.side_effect = ServiceError("down")
        with patch("vischeck.main.build_manager", return_value=manager):
            with pytest.raises(SystemExit) as info:
                main(["-a", "A", "-t", "T", "-k", "key"])
        assert info.value.code == 1
        manager.abort.assert_called_once()
        desktop_driver.close.assert_called_once()

    def test_empty_app_name_exits_one(self, desktop_driver: MagicMock) -> None:
        """An empty application name is logged and exits 1."""
        manager = MagicMock()
        manager.check_window.side_effect = ValueError("app_name must not be empty")
        with patch("vischeck.main.build_manager", return_value=manager):
            with pytest.raises(SystemExit) as info:
                main(["-a", "", "-t", "T", "-k", "key"])
        assert info.value.code == 1
        manager.abort.assert_called_once()
        desktop_driver.close.assert_called_once()
