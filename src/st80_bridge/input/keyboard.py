"""
Keyboard Translator for the Smalltalk-80 VM
===========================================

The host delivers three independent notifications per keystroke:

- **pressed**: a physical key went down (raw key code + composed char)
- **typed**: the toolkit composed a character (no physical key code)
- **released**: a physical key went up

The VM wants something else: raw down/up transitions for the modifier keys
(undecoded events) bracketing fully resolved characters (decoded events).
This module reconciles the two models so that every logical keystroke
reaches the VM exactly once, with Control and Shift downs emitted just
before the first character of a chord and the matching ups emitted when
Control is released.

Chords
------
Control combinations usually produce no typed notification, so they are
resolved at key-down time. Shift is only reported to the VM inside a
Control chord; plain shifted characters arrive already composed.

    Control down   -> (nothing yet)
    'a' down       -> undecoded_key_down(K_CONTROL), decoded_key_pressed('a')
    Control up     -> undecoded_key_up(K_CONTROL)

The modifier bookkeeping is an immutable `ModifierState` moved along by
pure transition functions, which return the events to emit together with
the new state.

Remark: the "de" locale maps the German umlauts to the bracket and brace
characters sitting at their positions on a US keyboard; it is irrelevant
for other keyboards and can be switched off with locale "none".

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, Hashable, Optional, Tuple

from st80_bridge.errors import ConfigError
from st80_bridge.events import (
    K_CONTROL,
    K_LEFT_SHIFT,
    VmEvent,
    VmEventSink,
    decoded,
    key_down,
    key_up,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Host Key Codes
# =============================================================================

HOST_SHIFT = 16
HOST_CONTROL = 17
HOST_ALT = 18
HOST_INSERT = 155

# Composed char reported when a key produces no character
CHAR_UNDEFINED = 0xFFFF

LF = 0x0A
CR = 0x0D

# Dead keys: their typed notification never arrives on its own
DIACRITICALS = frozenset(ord(c) for c in "^´`¨")

LOCALE_REMAPS: Dict[str, Dict[int, int]] = {
    "de": {
        ord("ö"): ord("["), ord("Ö"): ord("{"),
        ord("ä"): ord("]"), ord("Ä"): ord("}"),
        ord("ü"): ord("\\"), ord("Ü"): ord("|"),
    },
    "none": {},
}

# Control combinations that some hosts deliver with the wrong shift state
CONTROL_FIXUPS: Dict[int, int] = {
    ord("_"): ord("-"),
    ord(":"): ord("."),
    ord(";"): ord(","),
}


# =============================================================================
# Bounded Key Sets
# =============================================================================

class BoundedSet:
    """
    Insertion-ordered set with a fixed capacity.

    When full, adding a new member evicts the oldest one. Members are
    normally removed explicitly by the paired release event; the capacity
    only matters for pathological input where releases get lost.
    """

    def __init__(self, capacity: int = 32):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: "OrderedDict[Hashable, None]" = OrderedDict()

    def __contains__(self, item: Hashable) -> bool:
        return item in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: Hashable) -> None:
        if item in self._items:
            return
        if len(self._items) >= self.capacity:
            evicted, _ = self._items.popitem(last=False)
            logger.debug("key buffer full, evicted %r", evicted)
        self._items[item] = None

    def discard(self, item: Hashable) -> None:
        self._items.pop(item, None)

    def clear(self) -> None:
        self._items.clear()


# =============================================================================
# Modifier State
# =============================================================================

class ChordState(Enum):
    """Which modifiers are physically held."""
    IDLE = "idle"
    CONTROL = "control"
    SHIFT = "shift"
    BOTH = "both"


@dataclass(frozen=True)
class ModifierState:
    """
    Modifier bookkeeping of the translator.

    Attributes:
        is_control: Control is physically held (and not cancelled by AltGr)
        is_shift: Shift is physically held
        sent_control: Control down was forwarded for the current chord
        sent_shift: Shift down was forwarded for the current chord
    """
    is_control: bool = False
    is_shift: bool = False
    sent_control: bool = False
    sent_shift: bool = False

    @property
    def chord(self) -> ChordState:
        if self.is_control and self.is_shift:
            return ChordState.BOTH
        if self.is_control:
            return ChordState.CONTROL
        if self.is_shift:
            return ChordState.SHIFT
        return ChordState.IDLE


Transition = Tuple[ModifierState, Tuple[VmEvent, ...]]


def press_control(state: ModifierState) -> Transition:
    """Control went down: start a chord, nothing forwarded yet."""
    if state.is_control:
        return state, ()
    return replace(state, is_control=True, sent_control=False), ()


def press_shift(state: ModifierState) -> Transition:
    """Shift went down."""
    if state.is_shift:
        return state, ()
    return replace(state, is_shift=True, sent_shift=False), ()


def release_control(state: ModifierState) -> Transition:
    """
    Control went up: close the chord.

    Forwarded modifiers are released innermost first (Shift, then Control).
    """
    events = []
    if state.sent_shift:
        events.append(key_up(K_LEFT_SHIFT))
    if state.sent_control:
        events.append(key_up(K_CONTROL))
    return replace(state, is_control=False, sent_control=False, sent_shift=False), tuple(events)


def cancel_control(state: ModifierState) -> Transition:
    """
    Alt went down inside a Control chord.

    Some hosts report AltGr as Control followed by Alt; the chord is not
    a Control chord after all. Anything already forwarded is released so
    the VM never sees a second Control down without an up in between.
    """
    return release_control(state)


def release_shift(state: ModifierState) -> Transition:
    """Shift went up."""
    events: Tuple[VmEvent, ...] = ()
    if state.sent_shift:
        events = (key_up(K_LEFT_SHIFT),)
    return replace(state, is_shift=False, sent_shift=False), events


def prefix_modifiers(state: ModifierState) -> Transition:
    """
    Modifier downs owed before the next decoded character.

    Control comes before Shift, each once per chord. Shift is only
    reported inside a Control chord.
    """
    events = []
    if state.is_control and not state.sent_control:
        events.append(key_down(K_CONTROL))
        state = replace(state, sent_control=True)
    if state.is_control and state.is_shift and not state.sent_shift:
        events.append(key_down(K_LEFT_SHIFT))
        state = replace(state, sent_shift=True)
    return state, tuple(events)


# =============================================================================
# Key Translator
# =============================================================================

class KeyTranslator:
    """
    Turns host key notifications into VM key events.

    Example:
        >>> from st80_bridge.events import EventRecorder
        >>> rec = EventRecorder()
        >>> keys = KeyTranslator(rec)
        >>> keys.key_pressed(HOST_CONTROL, CHAR_UNDEFINED)
        >>> keys.key_pressed(65, ord("a"))
        >>> [str(e) for e in rec.events]
        ['undecoded_key_down(0x8A)', "decoded_key_pressed('a')"]
    """

    def __init__(self, sink: VmEventSink, locale: str = "de", capacity: int = 32):
        """
        Initialize the translator.

        Args:
            sink: Receiver of the VM events
            locale: Remap table for typed characters ("de" or "none")
            capacity: Capacity of the pressed-key and recent-char sets

        Raises:
            ConfigError: If the locale has no remap table
        """
        if locale not in LOCALE_REMAPS:
            raise ConfigError("keyboard_locale", locale, "no remap table for this locale")
        self._sink = sink
        self._remap = LOCALE_REMAPS[locale]
        self._state = ModifierState()
        self._pressed = BoundedSet(capacity)
        self._recent = BoundedSet(capacity)

    @property
    def state(self) -> ModifierState:
        """Current modifier state."""
        return self._state

    @property
    def chord(self) -> ChordState:
        """Which modifiers are currently held."""
        return self._state.chord

    def is_pressed(self, code: int) -> bool:
        """True if a key code is currently held down."""
        return code in self._pressed

    # =========================================================================
    # Host Notifications
    # =========================================================================

    def key_pressed(self, code: int, char: int, key_code: Optional[int] = None) -> None:
        """
        A physical key went down.

        Args:
            code: Extended host key code (identifies the physical key)
            char: Composed character, or CHAR_UNDEFINED
            key_code: Plain host key code, substituted for the character in
                Control chords that produce none (default: code)
        """
        if code in self._pressed:
            return  # re-delivery without a release
        self._pressed.add(code)
        char = self._remap.get(char, char)

        if code == HOST_CONTROL:
            self._apply(press_control)
        if code == HOST_ALT and self._state.is_control:
            self._apply(cancel_control)
        if code == HOST_SHIFT:
            self._apply(press_shift)

        dead_key = char in DIACRITICALS and char < 128
        if dead_key:
            self._forward(char)
        if self._state.is_control and char == CHAR_UNDEFINED:
            char = key_code if key_code is not None else code  # e.g. Ctrl-6
        if self._state.is_control and 32 <= char < 128 and not dead_key:
            self._forward(char)
        if code == HOST_INSERT:
            self._forward(LF)

    def key_typed(self, char: int, code: int = 0) -> None:
        """
        The host composed a character.

        Args:
            char: The composed character
            code: Extended key code attached to the notification; 0 for
                true characters, non-zero for named function keys
        """
        if char in self._recent:
            return
        self._recent.add(char)

        if char == LF:
            char = CR
        elif char == CR:
            char = LF
        elif not self._state.is_control:
            char = self._remap.get(char, char)

        if char in DIACRITICALS or char > 128:
            return  # dead keys went out at key-down, the rest is unknown to the VM

        if self._state.is_control and char < 32 and code == 0:
            # Ctrl-@ .. Ctrl-_: recover the base letter
            char = ord(chr(char + 64).lower())
            char = CONTROL_FIXUPS.get(char, char)

        self._forward(char)

    def key_released(self, code: int, char: int) -> None:
        """
        A physical key went up.

        Args:
            code: Extended host key code
            char: Character the host associates with the release
        """
        self._pressed.discard(code)
        self._recent.discard(char)

        if code == HOST_CONTROL:
            self._apply(release_control)
        if code == HOST_SHIFT:
            self._apply(release_shift)

    def reset(self) -> None:
        """
        Release every forwarded modifier and forget all held keys.

        Used when the display loses focus and releases will not arrive.
        """
        self._apply(release_control)
        self._apply(release_shift)
        self._pressed.clear()
        self._recent.clear()

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _apply(self, transition: Callable[[ModifierState], Transition]) -> None:
        self._state, events = transition(self._state)
        self._emit(events)

    def _forward(self, char: int) -> None:
        self._apply(prefix_modifiers)
        self._emit((decoded(char),))

    def _emit(self, events: Tuple[VmEvent, ...]) -> None:
        for event in events:
            logger.debug("  ==> %s", event)
        self._sink.emit(events)
