"""Unit tests for session data models."""

from __future__ import annotations

import pytest

from vischeck.models.geometry import RectangleSize
from vischeck.models.session import (
    AppEnvironment,
    BatchInfo,
    ImageMatchSettings,
    MatchLevel,
    RunningSession,
    SessionStartInfo,
    TestResults,
)


def _start_info(**overrides: object) -> SessionStartInfo:
    values: dict[str, object] = {
        "agent_id": "a/1",
        "app_name": "App",
        "test_name": "Test",
        "batch": BatchInfo(),
        "environment": AppEnvironment(),
        "default_match_settings": ImageMatchSettings(),
    }
    values.update(overrides)
    return SessionStartInfo(**values)  # type: ignore[arg-type]


class TestSessionStartInfo:
    """Tests for SessionStartInfo."""

    @pytest.mark.parametrize("field_name", ["agent_id", "app_name", "test_name"])
    def test_empty_identity_rejected(self, field_name: str) -> None:
        """Agent id, app name and test name must be non-empty."""
        with pytest.raises(ValueError, match=field_name):
            _start_info(**{field_name: ""})

    def test_optional_fields_serialised_as_null(self) -> None:
        """Unset optional fields are sent as None."""
        data = _start_info().to_dict()
        assert data["verId"] is None
        assert data["envName"] is None
        assert data["parentBranchName"] is None

    def test_match_settings_wire_form(self) -> None:
        """Default match settings use the service's names."""
        settings = ImageMatchSettings(match_level=MatchLevel.CONTENT, ignore_caret=True)
        data = _start_info(default_match_settings=settings).to_dict()
        assert data["defaultMatchSettings"] == {"matchLevel": "Content", "ignoreCaret": True}


class TestBatchInfo:
    """Tests for BatchInfo defaults."""

    def test_unique_ids(self) -> None:
        """Each batch gets its own id."""
        assert BatchInfo().id != BatchInfo().id

    def test_started_at_is_utc_iso(self) -> None:
        """The start time is an ISO-8601 UTC timestamp."""
        assert BatchInfo().started_at.endswith("+00:00")

    def test_to_dict(self) -> None:
        """The wire form carries id, name and start time."""
        batch = BatchInfo(name="n", id="i", started_at="t")
        assert batch.to_dict() == {"id": "i", "name": "n", "startedAt": "t"}


class TestAppEnvironment:
    """Tests for AppEnvironment."""

    def test_to_dict(self) -> None:
        """The environment serialises its display size."""
        env = AppEnvironment(os="Linux", hosting_app="Firefox", display_size=RectangleSize(3, 4))
        assert env.to_dict() == {
            "os": "Linux",
            "hostingApp": "Firefox",
            "inferred": None,
            "displaySize": {"width": 3, "height": 4},
        }

    def test_missing_display_size(self) -> None:
        """An unknown display size is sent as None."""
        assert AppEnvironment().to_dict()["displaySize"] is None


class TestResultsModel:
    """Tests for TestResults and RunningSession parsing."""

    def test_from_dict_defaults_missing_counters(self) -> None:
        """Missing counters default to zero."""
        results = TestResults.from_dict({"steps": 4, "matches": 4})
        assert results.steps == 4
        assert results.mismatches == 0
        assert results.is_passed

    def test_new_is_not_passed(self) -> None:
        """A new test is never reported as passed."""
        assert not TestResults(is_new=True).is_passed

    def test_str_mentions_counters(self) -> None:
        """The string form lists steps and mismatches."""
        text = str(TestResults(steps=2, mismatches=1, url="u"))
        assert "steps: 2" in text
        assert "mismatches: 1" in text

    def test_running_session_from_dict(self) -> None:
        """A missing url and flag take defaults."""
        session = RunningSession.from_dict({"id": 12})
        assert session == RunningSession(id="12", url="", is_new_session=False)
