"""Trigger recorder: accumulates user input between checks.

Triggers are reported against the *previous* screenshot, because that is
what the user saw when acting.  The recorder translates control regions
and cursor positions from context-relative coordinates into that
screenshot's pixel space and silently drops input that falls outside
it.  Dropping is logged at debug level and never raises.

This module depends on ``models.geometry``, ``models.triggers`` and the
``Screenshot`` abstraction; it holds no reference to the session.

Typical usage::

    recorder = TriggerRecorder(lambda: settings.is_disabled)
    recorder.add_text_trigger(Region(10, 10, 200, 30), "hello", last_shot)
    pending = recorder.drain()
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from vischeck.core.coordinates import CoordinatesType
from vischeck.core.screenshot import Screenshot
from vischeck.exceptions import OutOfBoundsError
from vischeck.models.geometry import Location, Region
from vischeck.models.triggers import (
    KeyboardTrigger,
    MouseAction,
    MouseTrigger,
    TextTrigger,
    Trigger,
)

logger = logging.getLogger(__name__)


class TriggerRecorder:
    """Ordered queue of triggers recorded since the last check.

    Args:
        is_disabled: Callable returning True while the owning session
            is disabled.  Consulted before any argument validation.
    """

    def __init__(self, is_disabled: Callable[[], bool] | None = None) -> None:
        self._is_disabled = is_disabled or (lambda: False)
        self._triggers: deque[Trigger] = deque()

    def __len__(self) -> int:
        return len(self._triggers)

    @property
    def pending(self) -> list[Trigger]:
        """A snapshot of the recorded triggers, oldest first."""
        return list(self._triggers)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def add_text_trigger(
        self,
        control: Region,
        text: str,
        last_screenshot: Screenshot | None,
    ) -> None:
        """Record text entered into ``control``.

        Args:
            control: Context-relative region of the control.  Not
                modified.
            text: The entered text.
            last_screenshot: Screenshot of the previous check, or
                ``None`` if no check completed yet.

        Raises:
            ValueError: If ``control`` or ``text`` is ``None``.
        """
        if self._is_disabled():
            logger.debug("add_text_trigger: ignoring %r (disabled)", text)
            return

        if control is None:
            raise ValueError("control must not be None")
        if text is None:
            raise ValueError("text must not be None")

        if last_screenshot is None:
            logger.debug("add_text_trigger: ignoring %r (no screenshot)", text)
            return

        clipped = last_screenshot.get_intersected_region(
            control.copy(),
            CoordinatesType.CONTEXT_RELATIVE,
            CoordinatesType.SCREENSHOT_AS_IS,
        )
        if clipped.is_empty():
            logger.debug("add_text_trigger: ignoring %r (out of bounds)", text)
            return

        trigger = TextTrigger(control=clipped, text=text)
        self._triggers.append(trigger)
        logger.debug("add_text_trigger: added %s", trigger)

    def add_mouse_trigger(
        self,
        action: MouseAction,
        control: Region,
        cursor: Location,
        last_screenshot: Screenshot | None,
    ) -> None:
        """Record a pointer action on ``control``.

        The cursor is given relative to the control.  It is first made
        context-relative by offsetting it by the control's location,
        then moved into screenshot space.  A cursor outside the
        screenshot drops the trigger.  When the control is at least
        partly visible the stored cursor is re-expressed relative to the
        visible part of the control; otherwise the absolute screenshot
        position is kept since there is no visible frame to anchor it.

        Args:
            action: The pointer action.
            control: Context-relative region of the control.  Not
                modified.
            cursor: Cursor position relative to the control.  Not
                modified.
            last_screenshot: Screenshot of the previous check, or
                ``None`` if no check completed yet.

        Raises:
            ValueError: If any argument other than the screenshot is
                ``None``.
        """
        if self._is_disabled():
            logger.debug("add_mouse_trigger: ignoring %s (disabled)", action)
            return

        if action is None:
            raise ValueError("action must not be None")
        if control is None:
            raise ValueError("control must not be None")
        if cursor is None:
            raise ValueError("cursor must not be None")

        if last_screenshot is None:
            logger.debug("add_mouse_trigger: ignoring %s (no screenshot)", action)
            return

        cursor_in_context = cursor.copy()
        cursor_in_context.offset_by(control.location)
        try:
            cursor_in_screenshot = last_screenshot.get_location_in_screenshot(
                cursor_in_context, CoordinatesType.CONTEXT_RELATIVE
            )
        except OutOfBoundsError:
            logger.debug("add_mouse_trigger: ignoring %s (out of bounds)", action)
            return

        clipped = last_screenshot.get_intersected_region(
            control.copy(),
            CoordinatesType.CONTEXT_RELATIVE,
            CoordinatesType.SCREENSHOT_AS_IS,
        )
        if not clipped.is_empty():
            cursor_in_screenshot.offset(-clipped.left, -clipped.top)

        trigger = MouseTrigger(action=action, control=clipped, location=cursor_in_screenshot)
        self._triggers.append(trigger)
        logger.debug("add_mouse_trigger: added %s", trigger)

    def add_keyboard_trigger(self, key: str, last_screenshot: Screenshot | None) -> None:
        """Record a key press not tied to a control.

        Args:
            key: Key name or combo (e.g. ``"ctrl+s"``).
            last_screenshot: Screenshot of the previous check, or
                ``None`` if no check completed yet.

        Raises:
            ValueError: If ``key`` is empty.
        """
        if self._is_disabled():
            logger.debug("add_keyboard_trigger: ignoring %r (disabled)", key)
            return

        if not key:
            raise ValueError("key must be a non-empty string")

        if last_screenshot is None:
            logger.debug("add_keyboard_trigger: ignoring %r (no screenshot)", key)
            return

        trigger = KeyboardTrigger(key=key)
        self._triggers.append(trigger)
        logger.debug("add_keyboard_trigger: added %s", trigger)

    # ------------------------------------------------------------------
    # Draining
    # ------------------------------------------------------------------

    def drain(self) -> list[Trigger]:
        """Return all recorded triggers, oldest first, and clear the queue."""
        drained = list(self._triggers)
        self._triggers.clear()
        return drained

    def clear(self) -> None:
        """Discard all recorded triggers."""
        self._triggers.clear()
