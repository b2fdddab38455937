"""Session lifecycle manager: open, check, close and abort one test.

The ``SessionManager`` is the entry point of vischeck.  It owns the test
state (open or closed), the handle of the remote session, the screenshot
of the last completed check and the queue of recorded triggers, and it
applies the failure policy to every check and to the final result.

Lifecycle::

    Closed --open()--> Open --close()/abort()--> Closed

While open, the remote session is started lazily by the first check.
``abort()`` is safe to call at any time, any number of times.  When the
manager is disabled every public operation returns immediately without
touching state or the service.

Typical usage::

    manager = SessionManager(driver, Settings.from_dict({"api_key": key}))
    manager.open("My App", "Login flow")
    try:
        manager.check_window("login page")
        manager.add_text_trigger(Region(40, 200, 300, 30), "user@example.com")
        manager.check_window("filled form")
        results = manager.close()
    finally:
        manager.abort()

Dependencies:
    * ``core.match_window_task`` -- performs each check with retries
    * ``core.server_connector`` -- starts and stops remote sessions
    * ``core.trigger_recorder`` -- records user input between checks
    * ``core.failure_policy`` -- decides when to raise and what to save
    * ``platform.interface`` -- automation-framework capabilities
"""

from __future__ import annotations

import dataclasses
import logging
import os
import time
from collections.abc import Callable

from vischeck.config.settings import API_KEY_ENV_VAR, Settings
from vischeck.core.app_output import AppOutputProvider, DeltaCompressor
from vischeck.core.coordinates import CoordinatesType
from vischeck.core.failure_policy import (
    FailureReports,
    TestOutcome,
    classify,
    mismatch_message,
    outcome_message,
    raise_for_outcome,
    should_raise_on_mismatch,
    should_save,
)
from vischeck.core.match_window_task import MatchWindowTask
from vischeck.core.screenshot import Screenshot
from vischeck.core.server_connector import ServerConnector, SessionTransport
from vischeck.core.trigger_recorder import TriggerRecorder
from vischeck.exceptions import (
    InvalidStateError,
    TestFailedError,
    VisCheckError,
)
from vischeck.models.geometry import Location, RectangleSize, Region
from vischeck.models.session import (
    AppEnvironment,
    BatchInfo,
    ImageMatchSettings,
    MatchLevel,
    MatchResult,
    RegionProvider,
    RunningSession,
    SessionStartInfo,
    TestResults,
)
from vischeck.models.triggers import MouseAction, Trigger
from vischeck.platform.interface import AppDriver

logger = logging.getLogger(__name__)

# Logger the optional per-session log handler is attached to.
_PACKAGE_LOGGER: str = "vischeck"


def _blank_to_none(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.strip()


class SessionManager:
    """Drives one visual test at a time against the comparison service.

    Not thread-safe: one manager is used from one thread for one test
    at a time.

    Args:
        driver: Automation-framework capabilities (screenshots,
            viewport, title, environment).
        settings: Initial configuration.  Defaults to
            ``Settings()``.
        connector: Service transport.  Defaults to a
            ``ServerConnector`` built from ``settings``.
        compressor: Delta compressor for screenshots.  Defaults to
            sending plain PNG.
        log_handler: Optional handler attached to the ``vischeck``
            logger from ``open`` until ``close`` or ``abort``.
        sleep: Sleep function used between match retries.
    """

    def __init__(
        self,
        driver: AppDriver,
        settings: Settings | None = None,
        connector: SessionTransport | None = None,
        compressor: DeltaCompressor | None = None,
        log_handler: logging.Handler | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        settings = settings or Settings()
        self._driver = driver
        self._compressor = compressor
        self._log_handler = log_handler
        self._log_handler_attached: bool = False
        self._sleep = sleep

        # -- Configuration ----------------------------------------------
        self._is_disabled: bool = settings.is_disabled
        self._api_key: str = settings.api_key or os.environ.get(API_KEY_ENV_VAR, "")
        self._server_url: str = settings.server_url
        self._proxy_url: str = settings.proxy_url
        self._agent_id: str | None = _blank_to_none(settings.agent_id)
        self._match_timeout: int = settings.match_timeout_seconds
        self._retry_interval_ms: int = settings.match_retry_interval_ms
        self._failure_reports = FailureReports(settings.failure_reports)
        self._save_new_tests: bool = settings.save_new_tests
        self._save_failed_tests: bool = settings.save_failed_tests
        self._host_os: str | None = _blank_to_none(settings.host_os)
        self._host_app: str | None = _blank_to_none(settings.host_app)
        self._baseline_name: str | None = _blank_to_none(settings.baseline_name)
        self._branch_name: str | None = _blank_to_none(settings.branch_name)
        self._parent_branch_name: str | None = _blank_to_none(settings.parent_branch_name)
        self._batch: BatchInfo | None = None
        self._default_match_settings = ImageMatchSettings()

        self._owns_connector: bool = connector is None
        self._connector: SessionTransport = connector or ServerConnector(
            server_url=settings.server_url,
            api_key=self._api_key,
            proxy_url=settings.proxy_url,
            timeout_seconds=settings.server_timeout_seconds,
        )

        # -- Test state -------------------------------------------------
        self._is_open: bool = False
        self._app_name: str = ""
        self._test_name: str = ""
        self._viewport_size: RectangleSize | None = None
        self._running_session: RunningSession | None = None
        self._session_start_info: SessionStartInfo | None = None
        self._match_task: MatchWindowTask | None = None
        self._last_screenshot: Screenshot | None = None
        self._should_match_once_on_timeout: bool = False
        self._recorder = TriggerRecorder(lambda: self._is_disabled)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def is_disabled(self) -> bool:
        return self._is_disabled

    @is_disabled.setter
    def is_disabled(self, value: bool) -> None:
        self._is_disabled = value

    @property
    def api_key(self) -> str:
        return self._api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        if value is None:
            raise ValueError("api_key must not be None")
        self._api_key = value
        if isinstance(self._connector, ServerConnector):
            self._connector.api_key = value

    @property
    def server_url(self) -> str:
        return self._server_url

    @server_url.setter
    def server_url(self, value: str | None) -> None:
        if isinstance(self._connector, ServerConnector):
            self._connector.server_url = value
            self._server_url = self._connector.server_url
        else:
            self._server_url = value or ""

    @property
    def proxy_url(self) -> str:
        return self._proxy_url

    @proxy_url.setter
    def proxy_url(self, value: str | None) -> None:
        self._proxy_url = value or ""
        if isinstance(self._connector, ServerConnector):
            self._connector.proxy_url = self._proxy_url

    @property
    def agent_id(self) -> str | None:
        return self._agent_id

    @agent_id.setter
    def agent_id(self, value: str | None) -> None:
        self._agent_id = _blank_to_none(value)

    @property
    def full_agent_id(self) -> str:
        """The caller's agent id followed by the driver's base agent id."""
        base = self._driver.get_base_agent_id()
        if self._agent_id is None:
            return base
        return f"{self._agent_id} [{base}]"

    @property
    def match_timeout(self) -> int:
        """Default retry timeout of a check, in seconds."""
        return self._match_timeout

    @match_timeout.setter
    def match_timeout(self, seconds: int) -> None:
        if self._is_disabled:
            logger.debug("match_timeout: ignored (disabled)")
            return
        if seconds < 0:
            raise ValueError(f"match_timeout must be >= 0, got {seconds}")
        self._match_timeout = seconds
        logger.info("Match timeout set to %d second(s)", seconds)

    @property
    def failure_reports(self) -> FailureReports:
        return self._failure_reports

    @failure_reports.setter
    def failure_reports(self, value: FailureReports | str) -> None:
        self._failure_reports = FailureReports(value)

    @property
    def save_new_tests(self) -> bool:
        return self._save_new_tests

    @save_new_tests.setter
    def save_new_tests(self, value: bool) -> None:
        self._save_new_tests = value

    @property
    def save_failed_tests(self) -> bool:
        return self._save_failed_tests

    @save_failed_tests.setter
    def save_failed_tests(self, value: bool) -> None:
        self._save_failed_tests = value

    @property
    def batch(self) -> BatchInfo | None:
        return self._batch

    @batch.setter
    def batch(self, batch: BatchInfo | None) -> None:
        if self._is_disabled:
            logger.debug("batch: ignored (disabled)")
            return
        logger.debug("batch = %s", batch)
        self._batch = batch

    @property
    def default_match_settings(self) -> ImageMatchSettings:
        return self._default_match_settings

    @default_match_settings.setter
    def default_match_settings(self, value: ImageMatchSettings) -> None:
        if value is None:
            raise ValueError("default_match_settings must not be None")
        self._default_match_settings = dataclasses.replace(value)

    @property
    def match_level(self) -> MatchLevel:
        return self._default_match_settings.match_level

    @match_level.setter
    def match_level(self, value: MatchLevel) -> None:
        self._default_match_settings = dataclasses.replace(
            self._default_match_settings, match_level=value
        )

    @property
    def host_os(self) -> str | None:
        return self._host_os

    @host_os.setter
    def host_os(self, value: str | None) -> None:
        logger.info("Host OS: %s", value)
        self._host_os = _blank_to_none(value)

    @property
    def host_app(self) -> str | None:
        return self._host_app

    @host_app.setter
    def host_app(self, value: str | None) -> None:
        logger.info("Host App: %s", value)
        self._host_app = _blank_to_none(value)

    @property
    def baseline_name(self) -> str | None:
        return self._baseline_name

    @baseline_name.setter
    def baseline_name(self, value: str | None) -> None:
        logger.info("Baseline name: %s", value)
        self._baseline_name = _blank_to_none(value)

    @property
    def branch_name(self) -> str | None:
        return self._branch_name

    @branch_name.setter
    def branch_name(self, value: str | None) -> None:
        self._branch_name = _blank_to_none(value)

    @property
    def parent_branch_name(self) -> str | None:
        return self._parent_branch_name

    @parent_branch_name.setter
    def parent_branch_name(self, value: str | None) -> None:
        self._parent_branch_name = _blank_to_none(value)

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def running_session(self) -> RunningSession | None:
        return self._running_session

    @property
    def session_start_info(self) -> SessionStartInfo | None:
        return self._session_start_info

    @property
    def last_screenshot(self) -> Screenshot | None:
        return self._last_screenshot

    @property
    def pending_triggers(self) -> list[Trigger]:
        """Triggers recorded since the last completed check, oldest first."""
        return self._recorder.pending

    @property
    def should_match_once_on_timeout(self) -> bool:
        """Whether the next check waits the full timeout before matching once."""
        return self._should_match_once_on_timeout

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(
        self,
        app_name: str,
        test_name: str,
        viewport_size: RectangleSize | None = None,
    ) -> None:
        """Start a test.

        The remote session is not started here; the first check starts
        it.  If a test is already open it is aborted and the conflict is
        still reported.

        Args:
            app_name: Name of the application under test.
            test_name: Name of the test.
            viewport_size: Viewport size to enforce, or ``None`` to use
                whatever the driver reports.

        Raises:
            ValueError: If ``app_name`` or ``test_name`` is ``None``.
            VisCheckError: If no API key is configured.
            InvalidStateError: If a test is already open.
        """
        if self._is_disabled:
            logger.debug("open(): ignored (disabled)")
            return

        if app_name is None:
            raise ValueError("app_name must not be None")
        if test_name is None:
            raise ValueError("test_name must not be None")

        self._open_log_sink()
        try:
            logger.info("Agent = %s", self.full_agent_id)
            logger.debug("open(%r, %r, %s)", app_name, test_name, viewport_size)

            if not self._api_key:
                raise VisCheckError(
                    f"API key is missing! Set it via settings, the api_key "
                    f"property or the {API_KEY_ENV_VAR} environment variable"
                )

            logger.info("Server URL is '%s'", self._server_url)
            logger.info("match_timeout = %d", self._match_timeout)
            logger.info("Default match settings = %s", self._default_match_settings)
            logger.info("FailureReports = %s", self._failure_reports.value)

            if self._is_open:
                self.abort()
                raise InvalidStateError("A test is already running")

            self._app_name = app_name
            self._test_name = test_name
            self._viewport_size = viewport_size
            self._last_screenshot = None
            self._recorder.clear()
            self._is_open = True
        except VisCheckError as exc:
            logger.info("open(): %s", exc)
            self._close_log_sink()
            raise

    def check(
        self,
        region_provider: RegionProvider,
        tag: str | None = None,
        ignore_mismatch: bool = False,
        retry_timeout: int = -1,
    ) -> MatchResult:
        """Check the application's current state against the baseline.

        Starts the remote session on the first call.  On a match, or on
        a mismatch that is not ignored, recorded triggers are drained
        and the screenshot becomes the reference for the next triggers.

        Args:
            region_provider: Region to crop the screenshot to.
            tag: Name of the step.
            ignore_mismatch: Do not record a mismatch, and keep the
                previous screenshot and triggers.
            retry_timeout: Retry timeout in milliseconds; negative uses
                the default match timeout.

        Returns:
            The ``MatchResult``.  Always a match when disabled.

        Raises:
            InvalidStateError: If no test is open.
            ValueError: If ``region_provider`` is ``None``.
            TestFailedError: On a mismatch with immediate failure
                reports.
            ServiceError: If the service cannot be reached.
        """
        if self._is_disabled:
            logger.debug("check(): ignored (disabled)")
            return MatchResult(as_expected=True)

        if not self._is_open:
            raise InvalidStateError("Session not open")
        if region_provider is None:
            raise ValueError("region_provider must not be None")

        tag = tag or ""
        logger.debug("check(%r, ignore_mismatch=%s, retry_timeout=%d)", tag, ignore_mismatch, retry_timeout)

        if self._running_session is None or self._match_task is None:
            logger.debug("No running session, starting session...")
            self._start_session()

        result = self._match_task.match_window(
            self._recorder.pending,
            self._last_screenshot,
            region_provider,
            tag,
            self._should_match_once_on_timeout,
            ignore_mismatch,
            retry_timeout,
        )

        if result.as_expected:
            self._recorder.drain()
            self._last_screenshot = result.screenshot
            logger.debug("check(%r): matched", tag)
            return result

        if not ignore_mismatch:
            self._recorder.drain()
            self._last_screenshot = result.screenshot

        self._should_match_once_on_timeout = True

        if not self._running_session.is_new_session:
            logger.info("Mismatch! (%s)", tag)

        if should_raise_on_mismatch(self._failure_reports, result.as_expected):
            raise TestFailedError(mismatch_message(self._test_name, self._app_name, tag))

        return result

    def check_window(
        self,
        tag: str | None = None,
        ignore_mismatch: bool = False,
        retry_timeout: int = -1,
    ) -> MatchResult:
        """Check the whole screenshot.  See ``check``."""
        return self.check(RegionProvider(), tag, ignore_mismatch, retry_timeout)

    def check_region(
        self,
        region: Region,
        tag: str | None = None,
        coordinates_type: CoordinatesType = CoordinatesType.CONTEXT_RELATIVE,
        ignore_mismatch: bool = False,
        retry_timeout: int = -1,
    ) -> MatchResult:
        """Check only ``region`` of the screenshot.  See ``check``."""
        provider = RegionProvider(region=region.copy(), coordinates_type=coordinates_type)
        return self.check(provider, tag, ignore_mismatch, retry_timeout)

    def close(self, throw_on_failure: bool = True) -> TestResults | None:
        """End the test and report its results.

        Args:
            throw_on_failure: Raise for failed and new tests instead of
                returning their results.

        Returns:
            The test results; empty results if no check was ever made;
            ``None`` when disabled.

        Raises:
            InvalidStateError: If no test is open.
            TestFailedError: If the test failed and ``throw_on_failure``.
            NewTestError: If the test is new and ``throw_on_failure``.
            ServiceError: If the session cannot be stopped.
        """
        if self._is_disabled:
            logger.debug("close(): ignored (disabled)")
            return None

        try:
            logger.debug("close()")
            if not self._is_open:
                raise InvalidStateError("Session not open")

            self._is_open = False
            self._last_screenshot = None
            self._recorder.clear()

            if self._running_session is None:
                logger.debug("close(): server session was not started")
                logger.info("--- Empty test ended.")
                return TestResults()

            session = self._running_session
            save = should_save(session.is_new_session, self._save_new_tests, self._save_failed_tests)
            logger.debug("close(): ending server session (save=%s)", save)

            results = self._connector.stop_session(session, False, save)
            results.is_new = session.is_new_session
            results.url = session.url
            logger.debug("close(): %s", results)

            outcome = classify(results)
            message = outcome_message(outcome, self._test_name, self._app_name, session.url)
            if outcome is TestOutcome.FAILED:
                logger.info("--- Failed test ended. %s", message)
            elif outcome is TestOutcome.NEW:
                logger.info("--- New test ended. %s", message)
            else:
                logger.info("--- Test passed. %s", message)

            raise_for_outcome(outcome, results, self._test_name, self._app_name, throw_on_failure)
            return results
        finally:
            self._running_session = None
            self._match_task = None
            self._close_log_sink()
            self._release_connector()

    def abort(self) -> None:
        """Abort the test if it is still open.

        Stops the remote session without saving.  Service errors are
        logged and never raised.  Safe to call repeatedly and when no
        test is open.
        """
        if self._is_disabled:
            logger.debug("abort(): ignored (disabled)")
            return

        try:
            self._is_open = False
            self._last_screenshot = None
            self._recorder.clear()

            if self._running_session is None:
                logger.debug("abort(): no server session")
                return

            logger.debug("abort(): aborting server session...")
            try:
                self._connector.stop_session(self._running_session, True, False)
                logger.info("--- Test aborted.")
            except VisCheckError as exc:
                logger.warning("Failed to abort server session: %s", exc)
        finally:
            self._running_session = None
            self._match_task = None
            self._close_log_sink()
            self._release_connector()

    abort_if_not_closed = abort

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def add_text_trigger(self, control: Region, text: str) -> None:
        """Record text entered into a context-relative ``control``."""
        self._recorder.add_text_trigger(control, text, self._last_screenshot)

    def add_mouse_trigger(self, action: MouseAction, control: Region, cursor: Location) -> None:
        """Record a pointer action at ``cursor``, relative to ``control``."""
        self._recorder.add_mouse_trigger(action, control, cursor, self._last_screenshot)

    def add_keyboard_trigger(self, key: str) -> None:
        """Record a key press."""
        self._recorder.add_keyboard_trigger(key, self._last_screenshot)

    # ------------------------------------------------------------------
    # Session start
    # ------------------------------------------------------------------

    def app_environment(self) -> AppEnvironment:
        """Describe the runtime under test, honouring host overrides."""
        return AppEnvironment(
            os=self._host_os,
            hosting_app=self._host_app,
            inferred=self._driver.get_inferred_environment(),
            display_size=self._viewport_size,
        )

    def _start_session(self) -> None:
        logger.debug("_start_session()")

        if self._viewport_size is None:
            self._viewport_size = self._driver.get_viewport_size()
        else:
            self._driver.set_viewport_size(self._viewport_size)

        if self._batch is None:
            logger.debug("_start_session(): no batch set")
            batch = BatchInfo()
        else:
            logger.debug("_start_session(): batch is %s", self._batch)
            batch = self._batch

        environment = self.app_environment()
        logger.debug("_start_session(): application environment is %s", environment)

        self._session_start_info = SessionStartInfo(
            agent_id=self._driver.get_base_agent_id(),
            app_name=self._app_name,
            test_name=self._test_name,
            batch=batch,
            environment=environment,
            default_match_settings=dataclasses.replace(self._default_match_settings),
            env_name=self._baseline_name,
            branch_name=self._branch_name,
            parent_branch_name=self._parent_branch_name,
        )

        logger.debug("_start_session(): starting server session...")
        session = self._connector.start_session(self._session_start_info)
        self._running_session = session
        logger.debug("_start_session(): server session id is %s", session.id)

        test_info = f"'{self._test_name}' of '{self._app_name}' {environment}"
        if session.is_new_session:
            logger.info("--- New test started - %s", test_info)
            self._should_match_once_on_timeout = True
        else:
            logger.info("--- Test started - %s", test_info)
            self._should_match_once_on_timeout = False

        self._match_task = MatchWindowTask(
            transport=self._connector,
            session=session,
            app_output_provider=AppOutputProvider(self._driver, self._compressor),
            match_timeout_seconds=self._match_timeout,
            retry_interval_ms=self._retry_interval_ms,
            sleep=self._sleep,
        )

    # ------------------------------------------------------------------
    # Log sink
    # ------------------------------------------------------------------

    def _open_log_sink(self) -> None:
        if self._log_handler is None or self._log_handler_attached:
            return
        logging.getLogger(_PACKAGE_LOGGER).addHandler(self._log_handler)
        self._log_handler_attached = True

    def _close_log_sink(self) -> None:
        if self._log_handler is None or not self._log_handler_attached:
            return
        logging.getLogger(_PACKAGE_LOGGER).removeHandler(self._log_handler)
        self._log_handler.flush()
        self._log_handler.close()
        self._log_handler_attached = False

    def _release_connector(self) -> None:
        # The connector rebuilds its HTTP client on the next request.
        if self._owns_connector and isinstance(self._connector, ServerConnector):
            self._connector.close()
