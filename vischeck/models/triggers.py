"""User-interaction triggers recorded between checks.

A trigger records something the user did to the application under test
(typing into a field, clicking a control, pressing a key) between two
checks.  Triggers are sent to the service along with the next check so
the step can be replayed and annotated.

Control regions and cursor locations stored on a trigger are already in
screenshot space; the ``TriggerRecorder`` performs that translation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from vischeck.models.geometry import Location, Region


class TriggerType(Enum):
    """Tag identifying a trigger variant on the wire.

    Attributes:
        UNKNOWN: Unclassified trigger.
        MOUSE: Pointer action on a control.
        TEXT: Text entered into a control.
        KEYBOARD: Raw key press without a control.
    """

    UNKNOWN = "Unknown"
    MOUSE = "Mouse"
    TEXT = "Text"
    KEYBOARD = "Keyboard"


class MouseAction(Enum):
    """The pointer action performed by a mouse trigger."""

    NONE = "None"
    CLICK = "Click"
    RIGHT_CLICK = "RightClick"
    DOUBLE_CLICK = "DoubleClick"
    MOVE = "Move"
    DOWN = "Down"
    UP = "Up"


@dataclass(frozen=True)
class TextTrigger:
    """Text entered by the user into a control.

    Attributes:
        control: The control's region in screenshot space.
        text: The entered text.
    """

    control: Region
    text: str

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.TEXT

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggerType": self.trigger_type.value,
            "control": self.control.to_dict(),
            "text": self.text,
        }

    def __str__(self) -> str:
        return f"Text [{self.control}] {self.text}"


@dataclass(frozen=True)
class MouseTrigger:
    """A pointer action performed on a control.

    Attributes:
        action: The kind of pointer action.
        control: The control's region in screenshot space, or ``EMPTY``
            when the control lies outside the screenshot.
        location: Cursor position.  Relative to the control's top-left
            corner when ``control`` is non-empty, otherwise absolute in
            screenshot space.
    """

    action: MouseAction
    control: Region
    location: Location

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.MOUSE

    def to_dict(self) -> dict[str, Any]:
        return {
            "triggerType": self.trigger_type.value,
            "mouseAction": self.action.value,
            "control": self.control.to_dict(),
            "location": self.location.to_dict(),
        }

    def __str__(self) -> str:
        return f"{self.action.value} [{self.control}] {self.location}"


@dataclass(frozen=True)
class KeyboardTrigger:
    """A key press that is not tied to a specific control.

    Attributes:
        key: Key name, e.g. ``"enter"`` or ``"ctrl+s"``.
    """

    key: str

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.KEYBOARD

    def to_dict(self) -> dict[str, Any]:
        return {"triggerType": self.trigger_type.value, "key": self.key}

    def __str__(self) -> str:
        return f"Keyboard [{self.key}]"


Trigger = Union[TextTrigger, MouseTrigger, KeyboardTrigger]
