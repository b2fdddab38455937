"""Configuration defaults for vischeck.

Provides the ``Settings`` dataclass that holds every recognised option
for the comparison-service connection, check timing, failure reporting,
baseline selection and session environment overrides.

Typical usage::

    from vischeck.config.settings import Settings, get_default_settings

    settings = get_default_settings()
    print(settings.match_timeout_seconds)

    settings = Settings.from_dict({"api_key": "...", "failure_reports": "immediate"})
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any

# Default comparison service.
DEFAULT_SERVER_URL: str = "https://eyessdk.applitools.com"

# Environment variable consulted when no API key is configured.
API_KEY_ENV_VAR: str = "VISCHECK_API_KEY"


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for a ``SessionManager``.

    The manager copies these values at construction; later changes go
    through the manager's own setters.

    Attributes:
        server_url: Base URL of the comparison service.
        api_key: Service API key.  Empty means "read from the
            ``VISCHECK_API_KEY`` environment variable".
        proxy_url: Optional HTTP(S) proxy URL, credentials included.
        agent_id: Optional caller-supplied agent name, reported next to
            the driver's base agent id.
        match_timeout_seconds: How long a check keeps retrying before
            accepting a mismatch.  Must be >= 0.
        failure_reports: ``"on_close"`` or ``"immediate"``.
        save_new_tests: Save new sessions as baselines on close.
        save_failed_tests: Save failed sessions as baselines on close.
        host_os: Overrides the reported host operating system.
        host_app: Overrides the reported hosting application.
        baseline_name: Overrides the baseline (environment) name.
        branch_name: Baseline branch.
        parent_branch_name: Branch a new branch is forked from.
        is_disabled: Turn every public operation into a no-op.
        server_timeout_seconds: HTTP timeout for service requests.
        match_retry_interval_ms: Delay between retried match attempts.
    """

    # -- Service connection ---------------------------------------------------
    server_url: str = DEFAULT_SERVER_URL
    api_key: str = ""
    proxy_url: str = ""
    agent_id: str = ""
    server_timeout_seconds: float = 300.0

    # -- Check timing ---------------------------------------------------------
    match_timeout_seconds: int = 2
    match_retry_interval_ms: int = 500

    # -- Failure reporting ----------------------------------------------------
    failure_reports: str = "on_close"
    save_new_tests: bool = True
    save_failed_tests: bool = False

    # -- Session environment --------------------------------------------------
    host_os: str = ""
    host_app: str = ""
    baseline_name: str = ""
    branch_name: str = ""
    parent_branch_name: str = ""

    # -- Switches -------------------------------------------------------------
    is_disabled: bool = False

    def __post_init__(self) -> None:
        """Validate ranges and enumerated values."""
        if self.match_timeout_seconds < 0:
            raise ValueError(
                f"match_timeout_seconds must be >= 0, got {self.match_timeout_seconds}"
            )
        if self.match_retry_interval_ms <= 0:
            raise ValueError(
                f"match_retry_interval_ms must be > 0, got {self.match_retry_interval_ms}"
            )
        if self.failure_reports not in ("on_close", "immediate"):
            raise ValueError(
                f"failure_reports must be 'on_close' or 'immediate', got {self.failure_reports!r}"
            )

    # -- Factory & serialisation ----------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create a ``Settings`` instance from a plain dictionary.

        Unknown keys are silently ignored so that forward-compatible
        config files do not break older versions.

        Args:
            data: Dictionary whose keys correspond to ``Settings``
                field names.

        Returns:
            A new ``Settings`` instance populated from *data*, with
            defaults filling any missing keys.
        """
        known_names = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_names}
        return cls(**filtered)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the settings to a plain dictionary."""
        return asdict(self)


def get_default_settings() -> Settings:
    """Return a ``Settings`` instance with all default values."""
    return Settings()
