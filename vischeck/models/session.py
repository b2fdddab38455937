"""Session data models: start info, running sessions, and results.

These dataclasses are shared between the ``SessionManager`` (which owns
the test lifecycle), the ``MatchWindowTask`` (which performs checks) and
the ``ServerConnector`` (which serialises them for the service).
Keeping them in the models layer avoids circular imports between core
modules.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from vischeck.core.coordinates import CoordinatesType
from vischeck.models.geometry import EMPTY, RectangleSize, Region
from vischeck.models.triggers import Trigger

if TYPE_CHECKING:
    from vischeck.core.screenshot import Screenshot


class MatchLevel(Enum):
    """How strictly the service compares a screenshot to its baseline.

    Attributes:
        NONE: No comparison.
        LAYOUT: Compare element layout only.
        CONTENT: Compare content, ignoring colours.
        STRICT: Compare as a human eye would.
        EXACT: Pixel-perfect comparison.
    """

    NONE = "None"
    LAYOUT = "Layout"
    CONTENT = "Content"
    STRICT = "Strict"
    EXACT = "Exact"


@dataclass
class ImageMatchSettings:
    """Default comparison settings sent when a session starts.

    Attributes:
        match_level: Comparison strictness.
        ignore_caret: Whether a blinking text caret is ignored.
    """

    match_level: MatchLevel = MatchLevel.STRICT
    ignore_caret: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchLevel": self.match_level.value,
            "ignoreCaret": self.ignore_caret,
        }

    def __str__(self) -> str:
        return f"[match level: {self.match_level.value}, ignore caret: {self.ignore_caret}]"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class BatchInfo:
    """A group of tests reported together.

    Attributes:
        name: Display name of the batch.  ``None`` lets the service
            pick a default.
        id: Unique batch identifier.
        started_at: ISO-8601 UTC timestamp of batch creation.
    """

    name: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "startedAt": self.started_at}

    def __str__(self) -> str:
        return f"'{self.name}' - {self.started_at}"


@dataclass
class AppEnvironment:
    """The runtime the application under test runs in.

    Attributes:
        os: Host operating system override, if any.
        hosting_app: Hosting application (e.g. browser) override, if any.
        inferred: Environment string inferred by the automation driver.
        display_size: Viewport size of the application.
    """

    os: str | None = None
    hosting_app: str | None = None
    inferred: str | None = None
    display_size: RectangleSize | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "os": self.os,
            "hostingApp": self.hosting_app,
            "inferred": self.inferred,
            "displaySize": self.display_size.to_dict() if self.display_size else None,
        }

    def __str__(self) -> str:
        return (
            f"[os = {self.os!r} hostingApp = {self.hosting_app!r} "
            f"displaySize = {self.display_size}]"
        )


@dataclass(frozen=True)
class SessionStartInfo:
    """Everything the service needs to start a session.

    Built once per session start and never modified afterwards.

    Attributes:
        agent_id: Identifier of the SDK flavour starting the session.
        app_name: Name of the application under test.
        test_name: Name of the test (scenario).
        batch: Batch the session belongs to.
        environment: Description of the runtime under test.
        default_match_settings: Comparison defaults for the session.
        ver_id: Optional application version identifier.
        env_name: Baseline name override, if any.
        branch_name: Branch the baseline is taken from.
        parent_branch_name: Branch a new branch is forked from.
    """

    agent_id: str
    app_name: str
    test_name: str
    batch: BatchInfo
    environment: AppEnvironment
    default_match_settings: ImageMatchSettings
    ver_id: str | None = None
    env_name: str | None = None
    branch_name: str | None = None
    parent_branch_name: str | None = None

    def __post_init__(self) -> None:
        """Validate that the identifying names are non-empty."""
        for name in ("agent_id", "app_name", "test_name"):
            if not getattr(self, name):
                raise ValueError(f"{name} must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        return {
            "agentId": self.agent_id,
            "appIdOrName": self.app_name,
            "verId": self.ver_id,
            "scenarioIdOrName": self.test_name,
            "batchInfo": self.batch.to_dict(),
            "envName": self.env_name,
            "environment": self.environment.to_dict(),
            "defaultMatchSettings": self.default_match_settings.to_dict(),
            "branchName": self.branch_name,
            "parentBranchName": self.parent_branch_name,
        }


@dataclass
class RunningSession:
    """A session started on the service.

    Attributes:
        id: Service-assigned session identifier.
        url: Link to the session results page.
        is_new_session: True when no baseline existed for the test.
    """

    id: str
    url: str = ""
    is_new_session: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunningSession:
        return cls(
            id=str(data["id"]),
            url=str(data.get("url") or ""),
            is_new_session=bool(data.get("isNewSession", False)),
        )


@dataclass
class TestResults:
    """Final outcome of a test, produced by close or abort.

    Attributes:
        steps: Number of checks performed.
        matches: Checks that matched the baseline.
        mismatches: Checks that did not match the baseline.
        missing: Baseline steps that were never checked.
        exact_matches: Matches at the ``EXACT`` level.
        strict_matches: Matches at the ``STRICT`` level.
        content_matches: Matches at the ``CONTENT`` level.
        layout_matches: Matches at the ``LAYOUT`` level.
        none_matches: Matches at the ``NONE`` level.
        is_new: True when the test created a new baseline.
        url: Link to the session results page.
    """

    __test__ = False

    steps: int = 0
    matches: int = 0
    mismatches: int = 0
    missing: int = 0
    exact_matches: int = 0
    strict_matches: int = 0
    content_matches: int = 0
    layout_matches: int = 0
    none_matches: int = 0
    is_new: bool = False
    url: str = ""

    @property
    def is_passed(self) -> bool:
        """True when the test is not new and nothing mismatched or went missing."""
        return not self.is_new and self.mismatches == 0 and self.missing == 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TestResults:
        """Build results from the service's JSON body.

        Unknown keys are ignored and missing counters default to zero.
        """
        return cls(
            steps=int(data.get("steps", 0)),
            matches=int(data.get("matches", 0)),
            mismatches=int(data.get("mismatches", 0)),
            missing=int(data.get("missing", 0)),
            exact_matches=int(data.get("exactMatches", 0)),
            strict_matches=int(data.get("strictMatches", 0)),
            content_matches=int(data.get("contentMatches", 0)),
            layout_matches=int(data.get("layoutMatches", 0)),
            none_matches=int(data.get("noneMatches", 0)),
        )

    def __str__(self) -> str:
        label = "New test" if self.is_new else "Existing test"
        return (
            f"{label} [ steps: {self.steps}, matches: {self.matches}, "
            f"mismatches: {self.mismatches}, missing: {self.missing} ] , "
            f"URL: {self.url}"
        )


@dataclass
class MatchResult:
    """Outcome of a single check.

    Attributes:
        as_expected: True if the screenshot matched the baseline.
        screenshot: The screenshot that was sent, or ``None`` when no
            check was actually performed (disabled mode).
    """

    as_expected: bool = False
    screenshot: Screenshot | None = None


@dataclass
class AppOutput:
    """What the application showed at the time of a check.

    Attributes:
        title: Window or page title.
        screenshot64: Base64 of the (possibly delta-compressed) screenshot.
    """

    title: str
    screenshot64: str

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "screenshot64": self.screenshot64}


@dataclass
class AppOutputWithScreenshot:
    """An ``AppOutput`` paired with the screenshot it was built from."""

    app_output: AppOutput
    screenshot: Screenshot


@dataclass
class MatchWindowData:
    """Payload of one match request.

    Attributes:
        user_inputs: Triggers recorded since the previous check.  May
            be empty but never ``None``.
        app_output: The application output to compare.
        tag: Name of the step being checked.
        ignore_mismatch: When True the service does not record a
            mismatch for this request.
    """

    user_inputs: list[Trigger]
    app_output: AppOutput
    tag: str
    ignore_mismatch: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "userInputs": [trigger.to_dict() for trigger in self.user_inputs],
            "appOutput": self.app_output.to_dict(),
            "tag": self.tag,
            "ignoreMismatch": self.ignore_mismatch,
        }


@dataclass
class RegionProvider:
    """Supplies the region a check should be cropped to.

    Attributes:
        region: The region to crop to, or ``EMPTY`` for the whole
            screenshot.
        coordinates_type: The coordinate space ``region`` is expressed
            in.
    """

    region: Region = field(default_factory=EMPTY.copy)
    coordinates_type: CoordinatesType = CoordinatesType.CONTEXT_RELATIVE
