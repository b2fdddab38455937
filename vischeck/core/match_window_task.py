"""Match protocol: one check, with retries while the UI settles.

An application is often still rendering when a check is requested, so a
single mismatch is not trusted right away.  ``MatchWindowTask`` keeps
re-capturing and re-matching (telling the service not to record those
attempts) until the window matches or the retry timeout elapses, then
performs one final attempt that the service records.

Retry policy:

* timeout ``0`` -- a single recorded attempt;
* ``run_once_on_timeout`` -- wait the whole timeout, then a single
  recorded attempt (used right after a mismatch or for a new session,
  where polling cannot succeed early);
* otherwise -- poll every ``retry_interval_ms`` with unrecorded
  attempts until a match or the timeout, then a final recorded attempt
  if none matched.

Dependencies: ``core.app_output``, ``core.server_connector``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from vischeck.core.app_output import AppOutputProvider
from vischeck.core.screenshot import Screenshot
from vischeck.core.server_connector import SessionTransport
from vischeck.models.session import (
    MatchResult,
    MatchWindowData,
    RegionProvider,
    RunningSession,
)
from vischeck.models.triggers import Trigger

logger = logging.getLogger(__name__)

# Default delay between polling attempts.
_DEFAULT_RETRY_INTERVAL_MS: int = 500


class MatchWindowTask:
    """Performs checks against one running session.

    Args:
        transport: Service transport used for match requests.
        session: The running session checks are recorded in.
        app_output_provider: Builds the application output per attempt.
        match_timeout_seconds: Default retry timeout.
        retry_interval_ms: Delay between polling attempts.
        sleep: Sleep function, injectable for tests.
        clock: Monotonic clock in seconds, injectable for tests.
    """

    def __init__(
        self,
        transport: SessionTransport,
        session: RunningSession,
        app_output_provider: AppOutputProvider,
        match_timeout_seconds: int,
        retry_interval_ms: int = _DEFAULT_RETRY_INTERVAL_MS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._session = session
        self._provider = app_output_provider
        self._match_timeout_seconds = match_timeout_seconds
        self._retry_interval_ms = retry_interval_ms
        self._sleep = sleep
        self._clock = clock

    @property
    def session(self) -> RunningSession:
        return self._session

    def match_window(
        self,
        user_inputs: Sequence[Trigger],
        last_screenshot: Screenshot | None,
        region_provider: RegionProvider,
        tag: str,
        run_once_on_timeout: bool,
        ignore_mismatch: bool,
        retry_timeout_ms: int = -1,
    ) -> MatchResult:
        """Run one check and return its result.

        Args:
            user_inputs: Triggers recorded since the previous check.
            last_screenshot: Screenshot of the previous check, used as
                the compression reference.
            region_provider: Region the screenshot is cropped to.
            tag: Name of the step.
            run_once_on_timeout: Wait the whole timeout before a single
                attempt instead of polling.
            ignore_mismatch: Ask the service not to record a mismatch
                for the final attempt.
            retry_timeout_ms: Retry timeout; negative means the default
                match timeout.

        Returns:
            The ``MatchResult`` of the last attempt.

        Raises:
            ServiceError: If a match request fails.
        """
        if retry_timeout_ms < 0:
            timeout_ms = self._match_timeout_seconds * 1000
        else:
            timeout_ms = retry_timeout_ms
        logger.debug(
            "match_window(tag=%r, timeout=%dms, run_once=%s, ignore=%s)",
            tag,
            timeout_ms,
            run_once_on_timeout,
            ignore_mismatch,
        )

        if timeout_ms == 0:
            return self._try_match(user_inputs, last_screenshot, region_provider, tag, ignore_mismatch)

        if run_once_on_timeout:
            self._sleep(timeout_ms / 1000.0)
            return self._try_match(user_inputs, last_screenshot, region_provider, tag, ignore_mismatch)

        return self._poll_until_timeout(
            user_inputs, last_screenshot, region_provider, tag, ignore_mismatch, timeout_ms
        )

    # -- Private helpers --------------------------------------------

    def _poll_until_timeout(
        self,
        user_inputs: Sequence[Trigger],
        last_screenshot: Screenshot | None,
        region_provider: RegionProvider,
        tag: str,
        ignore_mismatch: bool,
        timeout_ms: int,
    ) -> MatchResult:
        start = self._clock()
        attempts = 1
        result = self._try_match(user_inputs, last_screenshot, region_provider, tag, True)

        while not result.as_expected:
            elapsed_ms = (self._clock() - start) * 1000.0
            if elapsed_ms >= timeout_ms:
                break
            self._sleep(self._retry_interval_ms / 1000.0)
            attempts += 1
            result = self._try_match(user_inputs, last_screenshot, region_provider, tag, True)

        if result.as_expected:
            logger.debug("match_window: matched after %d attempt(s)", attempts)
            return result

        logger.debug("match_window: no match after %d attempt(s); final attempt", attempts)
        return self._try_match(user_inputs, last_screenshot, region_provider, tag, ignore_mismatch)

    def _try_match(
        self,
        user_inputs: Sequence[Trigger],
        last_screenshot: Screenshot | None,
        region_provider: RegionProvider,
        tag: str,
        ignore_mismatch: bool,
    ) -> MatchResult:
        output = self._provider.get_app_output(region_provider, last_screenshot)
        data = MatchWindowData(
            user_inputs=list(user_inputs),
            app_output=output.app_output,
            tag=tag,
            ignore_mismatch=ignore_mismatch,
        )
        as_expected = self._transport.match_window(self._session, data)
        return MatchResult(as_expected=as_expected, screenshot=output.screenshot)
