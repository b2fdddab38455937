"""Desktop implementation of ``AppDriver``.

Uses ``mss`` for fast screen capture of a single monitor.  The monitor
is the "viewport": it cannot be resized or scrolled, so screenshots are
always taken at scroll position ``(0, 0)``.
"""

from __future__ import annotations

import logging
import platform as _platform_mod

import mss
import numpy as np
from numpy.typing import NDArray

from vischeck.core.screenshot import ViewportScreenshot
from vischeck.models.geometry import RectangleSize
from vischeck.platform.interface import AppDriver

logger = logging.getLogger(__name__)

_AGENT_ID: str = "vischeck.desktop/1.0"


class DesktopDriver(AppDriver):
    """Captures a monitor of the local desktop.

    Args:
        monitor_index: ``mss`` monitor index.  ``1`` is the primary
            monitor, ``0`` the union of all monitors.
        title: Title reported with every check.  Desktop captures have
            no window title of their own.
    """

    def __init__(self, monitor_index: int = 1, title: str = "") -> None:
        self._sct = mss.mss()
        if not 0 <= monitor_index < len(self._sct.monitors):
            self._sct.close()
            raise ValueError(f"No monitor with index {monitor_index}")
        self._monitor = self._sct.monitors[monitor_index]
        self._title = title
        logger.info("DesktopDriver initialised on monitor %d.", monitor_index)

    def close(self) -> None:
        """Release the mss screen-capture context."""
        self._sct.close()
        logger.info("DesktopDriver closed.")

    # -- Identity --------------------------------------------------

    def get_base_agent_id(self) -> str:
        return _AGENT_ID

    def get_inferred_environment(self) -> str | None:
        return f"os: {_platform_mod.system()} {_platform_mod.release()}".strip()

    # -- Viewport --------------------------------------------------

    def get_viewport_size(self) -> RectangleSize:
        return RectangleSize(self._monitor["width"], self._monitor["height"])

    def set_viewport_size(self, size: RectangleSize) -> None:
        """Monitors cannot be resized; a different size is only logged."""
        current = self.get_viewport_size()
        if current != size:
            logger.warning(
                "Cannot resize desktop viewport from %s to %s; keeping %s",
                current,
                size,
                current,
            )

    # -- Capture ---------------------------------------------------

    def capture_frame(self) -> NDArray[np.uint8]:
        """Capture the monitor as a BGR numpy array.

        Returns:
            A numpy array of shape ``(H, W, 3)`` in BGR colour order
            with dtype ``uint8``.
        """
        shot = self._sct.grab(self._monitor)
        # mss returns BGRA; drop alpha channel for BGR
        frame: NDArray[np.uint8] = np.ascontiguousarray(
            np.array(shot, dtype=np.uint8)[:, :, :3]
        )
        return frame

    def get_screenshot(self) -> ViewportScreenshot:
        return ViewportScreenshot(self.capture_frame())

    def get_title(self) -> str:
        return self._title
