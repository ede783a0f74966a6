"""
Input Side of the Bridge
========================

- `keyboard.py`: modifier-chording decoder for host key notifications
- `pointer.py`: pointer clamping, de-duplication and button mapping
"""

from .keyboard import (
    CHAR_UNDEFINED,
    HOST_ALT,
    HOST_CONTROL,
    HOST_INSERT,
    HOST_SHIFT,
    BoundedSet,
    ChordState,
    KeyTranslator,
    ModifierState,
    cancel_control,
    prefix_modifiers,
    press_control,
    press_shift,
    release_control,
    release_shift,
)
from .pointer import MOUSE_KEYS, PointerTranslator, mouse_key_for

__all__ = [
    # Keyboard
    "CHAR_UNDEFINED",
    "HOST_ALT",
    "HOST_CONTROL",
    "HOST_INSERT",
    "HOST_SHIFT",
    "BoundedSet",
    "ChordState",
    "KeyTranslator",
    "ModifierState",
    "cancel_control",
    "prefix_modifiers",
    "press_control",
    "press_shift",
    "release_control",
    "release_shift",

    # Pointer
    "MOUSE_KEYS",
    "PointerTranslator",
    "mouse_key_for",
]
