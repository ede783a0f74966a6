"""
Keyboard Translator Unit Tests
==============================

Tests for decoding host key notifications into VM key events:
- Control/Shift chords and their modifier brackets
- AltGr cancellation
- dead keys, Insert, CR/LF swap and the German remapping
- de-duplication of repeated notifications
- the pure modifier transitions

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import pytest

from st80_bridge.errors import ConfigError
from st80_bridge.events import K_CONTROL, K_LEFT_SHIFT, decoded, key_down, key_up
from st80_bridge.input import (
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

KEY_A = 65
KEY_6 = 54


@pytest.fixture
def keys(recorder):
    """Translator with the default German remapping."""
    return KeyTranslator(recorder)


def control_down(keys):
    keys.key_pressed(HOST_CONTROL, CHAR_UNDEFINED)


def shift_down(keys):
    keys.key_pressed(HOST_SHIFT, CHAR_UNDEFINED)


# =============================================================================
# Bounded Set Tests
# =============================================================================

class TestBoundedSet:
    """Test the fixed-capacity key set."""

    def test_add_and_contains(self):
        """Added members are found."""
        s = BoundedSet(4)
        s.add(1)
        assert 1 in s
        assert 2 not in s

    def test_oldest_evicted(self):
        """A full set drops its oldest member."""
        s = BoundedSet(2)
        s.add("a")
        s.add("b")
        s.add("c")
        assert "a" not in s
        assert "b" in s and "c" in s
        assert len(s) == 2

    def test_readd_is_noop(self):
        """Adding a present member changes nothing."""
        s = BoundedSet(2)
        s.add("a")
        s.add("a")
        assert len(s) == 1

    def test_discard(self):
        """discard() removes members and ignores absent ones."""
        s = BoundedSet(2)
        s.add("a")
        s.discard("a")
        s.discard("b")
        assert len(s) == 0

    def test_invalid_capacity(self):
        """Capacity must be at least 1."""
        with pytest.raises(ValueError):
            BoundedSet(0)


# =============================================================================
# Modifier Transition Tests
# =============================================================================

class TestModifierTransitions:
    """Test the pure modifier state transitions."""

    def test_press_control(self):
        """Control down starts a chord without events."""
        state, events = press_control(ModifierState())
        assert state == ModifierState(is_control=True)
        assert events == ()

    def test_press_control_held(self):
        """A second Control down keeps the chord."""
        held = ModifierState(is_control=True, sent_control=True)
        assert press_control(held) == (held, ())

    def test_press_shift(self):
        """Shift down only records the modifier."""
        state, events = press_shift(ModifierState())
        assert state.is_shift and events == ()

    def test_prefix_control_then_shift(self):
        """Control is forwarded before Shift."""
        state, events = prefix_modifiers(ModifierState(is_control=True, is_shift=True))
        assert events == (key_down(K_CONTROL), key_down(K_LEFT_SHIFT))
        assert state.sent_control and state.sent_shift

    def test_prefix_once_per_chord(self):
        """Already forwarded modifiers are not repeated."""
        state, _ = prefix_modifiers(ModifierState(is_control=True))
        assert prefix_modifiers(state) == (state, ())

    def test_prefix_shift_alone_silent(self):
        """Shift outside a Control chord is never forwarded."""
        state, events = prefix_modifiers(ModifierState(is_shift=True))
        assert events == ()
        assert not state.sent_shift

    def test_release_control_order(self):
        """Forwarded Shift goes up before Control."""
        state, events = release_control(
            ModifierState(is_control=True, is_shift=True, sent_control=True, sent_shift=True)
        )
        assert events == (key_up(K_LEFT_SHIFT), key_up(K_CONTROL))
        assert state == ModifierState(is_shift=True)

    def test_release_control_nothing_sent(self):
        """A chord without characters releases silently."""
        state, events = release_control(ModifierState(is_control=True))
        assert events == ()
        assert state == ModifierState()

    def test_release_shift(self):
        """A forwarded Shift is released with the key."""
        state, events = release_shift(
            ModifierState(is_control=True, is_shift=True, sent_control=True, sent_shift=True)
        )
        assert events == (key_up(K_LEFT_SHIFT),)
        assert state == ModifierState(is_control=True, sent_control=True)

    def test_cancel_control(self):
        """Cancelling releases what was forwarded."""
        state, events = cancel_control(ModifierState(is_control=True, sent_control=True))
        assert events == (key_up(K_CONTROL),)
        assert not state.is_control

    @pytest.mark.parametrize("state,chord", [
        (ModifierState(), ChordState.IDLE),
        (ModifierState(is_control=True), ChordState.CONTROL),
        (ModifierState(is_shift=True), ChordState.SHIFT),
        (ModifierState(is_control=True, is_shift=True), ChordState.BOTH),
    ])
    def test_chord(self, state, chord):
        """chord reflects the held modifiers."""
        assert state.chord is chord


# =============================================================================
# Control Chord Tests
# =============================================================================

class TestControlChords:
    """Test Control and Control+Shift chords."""

    def test_control_a(self, keys, recorder):
        """Control down, then 'a' down yields Control down and 'a'."""
        control_down(keys)
        keys.key_pressed(KEY_A, ord("a"))
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("a"))]

    def test_control_alone_silent(self, keys, recorder):
        """Pressing and releasing Control alone sends nothing."""
        control_down(keys)
        keys.key_released(HOST_CONTROL, CHAR_UNDEFINED)
        assert recorder.events == []
        assert keys.chord is ChordState.IDLE

    def test_control_up_after_chord(self, keys, recorder):
        """Releasing Control closes the chord."""
        control_down(keys)
        keys.key_pressed(KEY_A, ord("a"))
        keys.key_released(KEY_A, ord("a"))
        keys.key_released(HOST_CONTROL, CHAR_UNDEFINED)
        assert recorder.events[-1] == key_up(K_CONTROL)
        assert keys.state == ModifierState()

    def test_control_sent_once_per_chord(self, keys, recorder):
        """Several characters share one Control down."""
        control_down(keys)
        keys.key_pressed(KEY_A, ord("a"))
        keys.key_pressed(66, ord("b"))
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("a")), decoded(ord("b"))]

    def test_control_shift_chord(self, keys, recorder):
        """Shift inside a Control chord is bracketed and released first."""
        control_down(keys)
        shift_down(keys)
        keys.key_pressed(KEY_A, ord("A"))
        keys.key_released(HOST_CONTROL, CHAR_UNDEFINED)
        assert recorder.events == [
            key_down(K_CONTROL),
            key_down(K_LEFT_SHIFT),
            decoded(ord("A")),
            key_up(K_LEFT_SHIFT),
            key_up(K_CONTROL),
        ]

    def test_shift_released_inside_chord(self, keys, recorder):
        """Releasing Shift first sends its up once."""
        control_down(keys)
        shift_down(keys)
        keys.key_pressed(KEY_A, ord("A"))
        keys.key_released(HOST_SHIFT, CHAR_UNDEFINED)
        keys.key_released(HOST_CONTROL, CHAR_UNDEFINED)
        assert recorder.events[-2:] == [key_up(K_LEFT_SHIFT), key_up(K_CONTROL)]
        assert recorder.events.count(key_up(K_LEFT_SHIFT)) == 1

    def test_control_char_from_typed(self, keys, recorder):
        """A typed control character recovers its letter."""
        control_down(keys)
        keys.key_pressed(KEY_A, 0x01)
        keys.key_typed(0x01)
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("a"))]

    def test_control_underscore_fixup(self, keys, recorder):
        """Ctrl-_ is delivered as Ctrl-minus."""
        control_down(keys)
        keys.key_typed(0x1F)
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("-"))]

    def test_named_key_not_recovered(self, keys, recorder):
        """Control characters of named keys are passed through."""
        control_down(keys)
        keys.key_typed(0x08, code=8)
        assert recorder.events == [key_down(K_CONTROL), decoded(0x08)]

    def test_undefined_char_uses_key_code(self, keys, recorder):
        """Ctrl-6 without a character sends the key code."""
        control_down(keys)
        keys.key_pressed(KEY_6, CHAR_UNDEFINED, key_code=KEY_6)
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("6"))]

    def test_undefined_char_defaults_to_code(self, keys, recorder):
        """Without a plain key code the extended code is used."""
        control_down(keys)
        keys.key_pressed(KEY_6, CHAR_UNDEFINED)
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("6"))]

    def test_control_umlaut_remapped_at_key_down(self, keys, recorder):
        """German letters map to brackets inside a chord too."""
        control_down(keys)
        keys.key_pressed(186, ord("ö"))
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("["))]


# =============================================================================
# AltGr Tests
# =============================================================================

class TestAltGr:
    """Test Control+Alt reported for AltGr."""

    def test_altgr_is_not_control(self, keys, recorder):
        """Control followed by Alt cancels the chord."""
        control_down(keys)
        keys.key_pressed(HOST_ALT, CHAR_UNDEFINED)
        keys.key_pressed(81, ord("@"))
        keys.key_typed(ord("@"))
        assert recorder.events == [decoded(ord("@"))]
        assert keys.chord is ChordState.IDLE

    def test_altgr_releases_sent_control(self, keys, recorder):
        """A forwarded Control is released when the chord is cancelled."""
        control_down(keys)
        keys.key_pressed(KEY_A, ord("a"))
        keys.key_pressed(HOST_ALT, CHAR_UNDEFINED)
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("a")), key_up(K_CONTROL)]

    def test_alt_alone(self, keys, recorder):
        """Alt without Control changes nothing."""
        keys.key_pressed(HOST_ALT, CHAR_UNDEFINED)
        assert recorder.events == []
        assert keys.chord is ChordState.IDLE


# =============================================================================
# Typed Character Tests
# =============================================================================

class TestTypedCharacters:
    """Test plain typed characters."""

    def test_plain_char(self, keys, recorder):
        """A typed character is sent without modifiers."""
        keys.key_typed(ord("x"))
        assert recorder.events == [decoded(ord("x"))]

    def test_shifted_char_no_shift_events(self, keys, recorder):
        """Shift outside Control is never forwarded."""
        shift_down(keys)
        keys.key_pressed(KEY_A, ord("A"))
        keys.key_typed(ord("A"))
        keys.key_released(HOST_SHIFT, CHAR_UNDEFINED)
        assert recorder.events == [decoded(ord("A"))]

    def test_cr_becomes_lf(self, keys, recorder):
        """Typed CR is delivered as LF."""
        keys.key_typed(0x0D)
        assert recorder.events == [decoded(0x0A)]

    def test_lf_becomes_cr(self, keys, recorder):
        """Typed LF is delivered as CR."""
        keys.key_typed(0x0A)
        assert recorder.events == [decoded(0x0D)]

    def test_insert_is_lf(self, keys, recorder):
        """Insert down yields LF."""
        keys.key_pressed(HOST_INSERT, CHAR_UNDEFINED)
        assert recorder.events == [decoded(0x0A)]

    def test_insert_in_chord_is_lf(self, keys, recorder):
        """Insert yields LF inside a Control chord as well."""
        control_down(keys)
        keys.key_pressed(HOST_INSERT, CHAR_UNDEFINED)
        assert recorder.events == [key_down(K_CONTROL), decoded(0x0A)]

    def test_german_remap(self, keys, recorder):
        """Umlauts map to the US bracket positions."""
        for char in "öÖäÄüÜ":
            keys.key_typed(ord(char))
        assert [e.value for e in recorder.events] == [ord(c) for c in "[{]}\\|"]

    def test_no_remap_locale(self, recorder):
        """Locale "none" leaves umlauts alone (and they are not ASCII)."""
        keys = KeyTranslator(recorder, locale="none")
        keys.key_typed(ord("ö"))
        assert recorder.events == []

    def test_non_ascii_dropped(self, keys, recorder):
        """Characters unknown to the VM are dropped."""
        keys.key_typed(0xE9)
        assert recorder.events == []

    def test_unknown_locale(self, recorder):
        """An unknown locale is a configuration error."""
        with pytest.raises(ConfigError):
            KeyTranslator(recorder, locale="fr")


# =============================================================================
# Dead Key Tests
# =============================================================================

class TestDeadKeys:
    """Test diacritical (dead) keys."""

    def test_circumflex_sent_at_key_down(self, keys, recorder):
        """An ASCII dead key is sent once, at key-down."""
        keys.key_pressed(192, ord("^"))
        keys.key_typed(ord("^"))
        assert recorder.events == [decoded(ord("^"))]

    def test_backtick(self, keys, recorder):
        """The grave accent is an ASCII dead key."""
        keys.key_pressed(192, ord("`"))
        keys.key_typed(ord("`"))
        assert recorder.events == [decoded(ord("`"))]

    def test_non_ascii_dead_key(self, keys, recorder):
        """Non-ASCII dead keys are never sent."""
        keys.key_pressed(221, ord("´"))
        keys.key_typed(ord("´"))
        assert recorder.events == []

    @pytest.mark.parametrize("char", ["^", "`"])
    def test_dead_key_in_chord_sent_once(self, keys, recorder, char):
        """A dead key inside a Control chord is forwarded once."""
        keys.key_pressed(HOST_CONTROL, CHAR_UNDEFINED)
        keys.key_pressed(0x82, ord(char))
        keys.key_typed(ord(char))
        assert recorder.events == [key_down(K_CONTROL), decoded(ord(char))]


# =============================================================================
# De-duplication Tests
# =============================================================================

class TestDeduplication:
    """Test suppression of repeated notifications."""

    def test_typed_repeat_suppressed(self, keys, recorder):
        """The same character is sent once until its key is released."""
        keys.key_typed(ord("a"))
        keys.key_typed(ord("a"))
        assert recorder.events == [decoded(ord("a"))]

    def test_typed_after_release(self, keys, recorder):
        """Releasing the key allows the character again."""
        keys.key_typed(ord("a"))
        keys.key_released(KEY_A, ord("a"))
        keys.key_typed(ord("a"))
        assert recorder.events == [decoded(ord("a"))] * 2

    def test_pressed_repeat_suppressed(self, keys, recorder):
        """A key-down without release is handled once."""
        control_down(keys)
        keys.key_pressed(KEY_A, ord("a"))
        keys.key_pressed(KEY_A, ord("a"))
        assert recorder.events == [key_down(K_CONTROL), decoded(ord("a"))]
        assert keys.is_pressed(KEY_A)

    def test_pressed_after_release(self, keys, recorder):
        """A released key can go down again."""
        control_down(keys)
        keys.key_pressed(KEY_A, ord("a"))
        keys.key_released(KEY_A, ord("a"))
        keys.key_pressed(KEY_A, ord("a"))
        assert recorder.events.count(decoded(ord("a"))) == 2
        assert recorder.events.count(key_down(K_CONTROL)) == 1

    def test_capacity_eviction(self, recorder):
        """Lost releases are forgotten once the buffer is full."""
        keys = KeyTranslator(recorder, capacity=1)
        keys.key_typed(ord("a"))
        keys.key_typed(ord("b"))
        keys.key_typed(ord("a"))
        assert [e.value for e in recorder.events] == [ord("a"), ord("b"), ord("a")]


# =============================================================================
# Reset Tests
# =============================================================================

class TestReset:
    """Test releasing everything on focus loss."""

    def test_reset_releases_modifiers(self, keys, recorder):
        """Forwarded modifiers go up on reset."""
        control_down(keys)
        shift_down(keys)
        keys.key_pressed(KEY_A, ord("A"))
        recorder.clear()
        keys.reset()
        assert recorder.events == [key_up(K_LEFT_SHIFT), key_up(K_CONTROL)]
        assert keys.chord is ChordState.IDLE

    def test_reset_forgets_pressed(self, keys):
        """Held keys are forgotten."""
        keys.key_pressed(KEY_A, ord("a"))
        keys.reset()
        assert not keys.is_pressed(KEY_A)

    def test_reset_idle_silent(self, keys, recorder):
        """Reset without a chord sends nothing."""
        keys.reset()
        assert recorder.events == []
