"""HTTP transport to the comparison service.

Starts and stops remote sessions and sends match requests.  The wire
format is JSON over HTTPS; the API key travels as the ``apiKey`` query
parameter on every request.

Endpoints (relative to the server URL)::

    POST   /api/sessions/running          start a session
    POST   /api/sessions/running/{id}     match one window
    DELETE /api/sessions/running/{id}     stop (or abort) a session

Dependencies: ``httpx``, ``models.session``.

Typical usage::

    connector = ServerConnector(settings.server_url, api_key="...")
    session = connector.start_session(start_info)
    as_expected = connector.match_window(session, match_data)
    results = connector.stop_session(session, is_aborted=False, save=True)
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from vischeck.config.settings import DEFAULT_SERVER_URL
from vischeck.exceptions import ServiceError
from vischeck.models.session import (
    MatchWindowData,
    RunningSession,
    SessionStartInfo,
    TestResults,
)

logger = logging.getLogger(__name__)

_SESSIONS_PATH: str = "/api/sessions/running"

# Connect timeout, independent of the overall request timeout.
_CONNECT_TIMEOUT_SECONDS: float = 10.0


class SessionTransport(Protocol):
    """What the session manager and match task need from a transport."""

    def start_session(self, start_info: SessionStartInfo) -> RunningSession: ...

    def stop_session(
        self,
        session: RunningSession,
        is_aborted: bool,
        save: bool,
    ) -> TestResults: ...

    def match_window(self, session: RunningSession, data: MatchWindowData) -> bool: ...


class ServerConnector:
    """``SessionTransport`` over a synchronous ``httpx`` client.

    Args:
        server_url: Base URL of the service.  Empty means the default.
        api_key: Service API key.
        proxy_url: Optional proxy URL for all requests.
        timeout_seconds: Overall request timeout.
        client: Pre-built ``httpx.Client``.  When given, ``proxy_url``
            and ``timeout_seconds`` are ignored (useful for tests).
    """

    def __init__(
        self,
        server_url: str = DEFAULT_SERVER_URL,
        api_key: str = "",
        proxy_url: str = "",
        timeout_seconds: float = 300.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._server_url = (server_url or DEFAULT_SERVER_URL).rstrip("/")
        self._api_key = api_key
        self._proxy_url = proxy_url
        self._timeout_seconds = timeout_seconds
        self._client = client

    # -- Configuration ----------------------------------------------

    @property
    def api_key(self) -> str:
        return self._api_key

    @api_key.setter
    def api_key(self, value: str) -> None:
        self._api_key = value

    @property
    def server_url(self) -> str:
        return self._server_url

    @server_url.setter
    def server_url(self, value: str | None) -> None:
        self._server_url = (value or DEFAULT_SERVER_URL).rstrip("/")

    @property
    def proxy_url(self) -> str:
        return self._proxy_url

    @proxy_url.setter
    def proxy_url(self, value: str | None) -> None:
        self._proxy_url = value or ""
        # Rebuild the client on next use so the proxy applies.
        self.close()

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    # -- Session API ------------------------------------------------

    def start_session(self, start_info: SessionStartInfo) -> RunningSession:
        """Start a new session on the service.

        Args:
            start_info: Everything the service needs to start it.

        Returns:
            The running session.  A ``201 Created`` status marks a new
            session when the body does not say so explicitly.

        Raises:
            ServiceError: On transport errors or unexpected statuses.
        """
        logger.debug("start_session: %s / %s", start_info.app_name, start_info.test_name)
        response = self._request(
            "POST",
            _SESSIONS_PATH,
            json={"startInfo": start_info.to_dict()},
        )
        body = self._json_body(response)
        if "isNewSession" not in body:
            body["isNewSession"] = response.status_code == 201
        try:
            session = RunningSession.from_dict(body)
        except KeyError as exc:
            raise ServiceError(f"Malformed start-session response: missing {exc}") from exc
        logger.debug("start_session: session id %s (new=%s)", session.id, session.is_new_session)
        return session

    def stop_session(
        self,
        session: RunningSession,
        is_aborted: bool,
        save: bool,
    ) -> TestResults:
        """Stop a running session.

        Args:
            session: The session to stop.
            is_aborted: True when the test was aborted rather than
                closed.
            save: Whether the session becomes the new baseline.

        Returns:
            The session's results as reported by the service.

        Raises:
            ServiceError: On transport errors or unexpected statuses.
        """
        logger.debug("stop_session: %s (aborted=%s, save=%s)", session.id, is_aborted, save)
        response = self._request(
            "DELETE",
            f"{_SESSIONS_PATH}/{session.id}",
            params={
                "aborted": str(is_aborted).lower(),
                "updateBaseline": str(save).lower(),
            },
        )
        return TestResults.from_dict(self._json_body(response))

    def match_window(self, session: RunningSession, data: MatchWindowData) -> bool:
        """Send one match request.

        Returns:
            True if the window matched the baseline.

        Raises:
            ServiceError: On transport errors or unexpected statuses.
        """
        logger.debug("match_window: session %s tag %r", session.id, data.tag)
        response = self._request(
            "POST",
            f"{_SESSIONS_PATH}/{session.id}",
            json=data.to_dict(),
        )
        return bool(self._json_body(response).get("asExpected", False))

    def close(self) -> None:
        """Close the underlying HTTP client, if one was created."""
        if self._client is not None:
            self._client.close()
            self._client = None

    # -- Private helpers --------------------------------------------

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            timeout = httpx.Timeout(self._timeout_seconds, connect=_CONNECT_TIMEOUT_SECONDS)
            self._client = httpx.Client(
                timeout=timeout,
                proxy=self._proxy_url or None,
            )
        return self._client

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        params = dict(kwargs.pop("params", {}) or {})
        params["apiKey"] = self._api_key
        url = f"{self._server_url}{path}"
        try:
            response = self._get_client().request(method, url, params=params, **kwargs)
        except httpx.HTTPError as exc:
            raise ServiceError(f"{method} {path} failed: {type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise ServiceError(
                f"{method} {path} failed: HTTP {response.status_code}: {response.text[:200]}"
            )
        return response

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise ServiceError(f"Invalid JSON from service: {exc}") from exc
        if not isinstance(body, dict):
            raise ServiceError(f"Unexpected JSON structure: {type(body).__name__}")
        return body
