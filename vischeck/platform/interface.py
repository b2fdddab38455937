"""Abstract base class for automation-framework drivers.

The ``SessionManager`` never talks to a browser, a desktop or a device
directly.  Everything it needs from the automation framework (capturing
screenshots, reading and setting the viewport size, the window title,
and a description of the runtime) goes through an ``AppDriver``.  Each
automation framework provides a concrete subclass; ``create_driver()``
returns the built-in implementation for a driver name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from vischeck.models.geometry import RectangleSize

if TYPE_CHECKING:
    from vischeck.core.screenshot import Screenshot


class AppDriver(ABC):
    """Capabilities the session needs from an automation framework."""

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @abstractmethod
    def get_base_agent_id(self) -> str:
        """Return the SDK agent identifier, e.g. ``"vischeck.desktop/1.0"``."""

    def get_inferred_environment(self) -> str | None:
        """Describe the runtime under test (user agent, OS string...).

        Returns:
            A free-form description, or ``None`` if unknown.
        """
        return None

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    @abstractmethod
    def get_viewport_size(self) -> RectangleSize:
        """Return the current size of the application's viewport."""

    @abstractmethod
    def set_viewport_size(self, size: RectangleSize) -> None:
        """Resize the application's viewport.

        Args:
            size: The requested viewport size.
        """

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    @abstractmethod
    def get_screenshot(self) -> Screenshot:
        """Capture the application's current state."""

    @abstractmethod
    def get_title(self) -> str:
        """Return the window or page title."""

    def close(self) -> None:
        """Release capture resources.  The default holds none."""


# ----------------------------------------------------------------------
# Factory
# ----------------------------------------------------------------------


def create_driver(name: str = "desktop") -> AppDriver:
    """Return the built-in driver registered under ``name``.

    Concrete driver modules are imported lazily so that their
    dependencies are only required when used.

    Args:
        name: Driver name.  Only ``"desktop"`` is built in.

    Returns:
        An ``AppDriver`` instance.

    Raises:
        NotImplementedError: If no driver has that name.
    """
    if name == "desktop":
        from vischeck.platform.desktop import DesktopDriver

        return DesktopDriver()

    raise NotImplementedError(f"Unsupported driver: {name!r}")
