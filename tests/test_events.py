"""
VM Event Protocol Unit Tests
============================

Tests for the event values, the recorder and the input word encoding.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import pytest

from st80_bridge.events import (
    K_CONTROL,
    SMALLTALK_EPOCH_OFFSET,
    EventKind,
    EventRecorder,
    EventWordQueue,
    decoded,
    key_down,
    key_up,
    moved,
)


class FakeClock:
    """Settable clock returning seconds since the Unix epoch."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def queue(clock):
    """Word queue on the fake clock."""
    return EventWordQueue(clock=clock)


ABSOLUTE_AT_ZERO = [0x5000, 0x81C9, 0x4B00]


# =============================================================================
# Event Value Tests
# =============================================================================

class TestVmEvent:
    """Test event values and their delivery."""

    def test_str(self):
        """Events print like the protocol calls."""
        assert str(key_down(K_CONTROL)) == "undecoded_key_down(0x8A)"
        assert str(key_up(0x88)) == "undecoded_key_up(0x88)"
        assert str(decoded(ord("a"))) == "decoded_key_pressed('a')"
        assert str(decoded(0x0D)) == "decoded_key_pressed(0x0D)"
        assert str(moved(3, 4)) == "mouse_moved(3, 4)"

    def test_kinds(self):
        """Factories build the matching kinds."""
        assert key_down(1).kind is EventKind.KEY_DOWN
        assert key_up(1).kind is EventKind.KEY_UP
        assert decoded(1).kind is EventKind.DECODED
        assert moved(1, 2).kind is EventKind.MOUSE_MOVED

    def test_deliver_roundtrip(self, recorder):
        """Delivering events to a recorder records them unchanged."""
        events = (key_down(K_CONTROL), decoded(97), key_up(K_CONTROL), moved(5, 6))
        recorder.emit(events)
        assert recorder.events == list(events)

    def test_recorder_clear(self):
        """clear() forgets recorded events."""
        rec = EventRecorder()
        rec.mouse_moved(1, 2)
        rec.clear()
        assert rec.events == []


# =============================================================================
# Word Encoding Tests
# =============================================================================

class TestEventWords:
    """Test the 16-bit input word encoding."""

    def test_first_event_absolute_time(self, queue):
        """The first event carries an absolute timestamp."""
        queue.undecoded_key_down(K_CONTROL)
        assert queue.drain() == ABSOLUTE_AT_ZERO + [0x308A]

    def test_key_up(self, queue):
        """Key up words carry 0x4000."""
        queue.undecoded_key_up(K_CONTROL)
        assert queue.drain()[-1] == 0x408A

    def test_decoded_is_down_and_up(self, queue):
        """A decoded key is a down word followed by an up word."""
        queue.decoded_key_pressed(ord("a"))
        assert queue.drain()[-2:] == [0x3061, 0x4061]

    def test_mouse_moved(self, queue):
        """A move is an x word and a y word."""
        queue.mouse_moved(639, 479)
        assert queue.drain()[-2:] == [0x127F, 0x21DF]
        assert queue.mouse_position == (639, 479)

    def test_delta_time(self, queue, clock):
        """Events close together carry a millisecond delta."""
        queue.decoded_key_pressed(ord("a"))
        queue.drain()
        clock.now = 0.25
        queue.decoded_key_pressed(ord("b"))
        assert queue.drain() == [250, 0x3062, 0x4062]

    def test_largest_delta(self, queue, clock):
        """Deltas up to 4095 ms fit the delta word."""
        queue.undecoded_key_down(K_CONTROL)
        queue.drain()
        clock.now = 4.0
        queue.undecoded_key_up(K_CONTROL)
        assert queue.drain() == [4000, 0x408A]

    def test_long_pause_absolute(self, queue, clock):
        """After a long pause the timestamp is absolute again."""
        queue.undecoded_key_down(K_CONTROL)
        queue.drain()
        clock.now = 5.0
        queue.undecoded_key_up(K_CONTROL)
        words = queue.drain()
        assert words[0] == 0x5000
        assert (words[1] << 16) | words[2] == SMALLTALK_EPOCH_OFFSET + 5

    def test_clock_backwards_absolute(self, clock):
        """A clock going backwards resynchronizes absolutely."""
        clock.now = 10.0
        queue = EventWordQueue(clock=clock)
        queue.undecoded_key_down(K_CONTROL)
        queue.drain()
        clock.now = 9.0
        queue.undecoded_key_up(K_CONTROL)
        assert queue.drain()[0] == 0x5000

    def test_time_adjustment(self, clock):
        """The time adjustment shifts absolute timestamps."""
        queue = EventWordQueue(clock=clock, time_adjust_minutes=60)
        assert queue.smalltalk_time() == SMALLTALK_EPOCH_OFFSET + 3600
        assert queue.smalltalk_time(100.0) == SMALLTALK_EPOCH_OFFSET + 3700

    def test_values_masked(self, queue):
        """Values are limited to their 12-bit field."""
        queue.mouse_moved(0x2FFF, 0)
        assert queue.drain()[-2:] == [0x1FFF, 0x2000]


# =============================================================================
# Queue Behavior Tests
# =============================================================================

class TestEventWordQueue:
    """Test queue access and the signal callback."""

    def test_empty(self, queue):
        """dequeue_word() returns None when empty."""
        assert queue.dequeue_word() is None
        assert len(queue) == 0

    def test_fifo(self, queue):
        """Words come out in order."""
        queue.undecoded_key_down(K_CONTROL)
        assert len(queue) == 4
        assert [queue.dequeue_word() for _ in range(4)] == ABSOLUTE_AT_ZERO + [0x308A]
        assert queue.dequeue_word() is None

    def test_signal_per_word(self, clock):
        """The signal fires once for every enqueued word."""
        calls = []
        queue = EventWordQueue(signal=lambda: calls.append(1), clock=clock)
        queue.decoded_key_pressed(ord("a"))
        assert len(calls) == 5

    def test_reset(self, queue):
        """reset() drops pending words and installs the new signal."""
        calls = []
        queue.undecoded_key_down(K_CONTROL)
        queue.reset(lambda: calls.append(1))
        assert len(queue) == 0
        queue.undecoded_key_up(K_CONTROL)
        assert len(calls) == len(queue)

    def test_reset_without_signal(self, clock):
        """reset(None) stops signalling."""
        calls = []
        queue = EventWordQueue(signal=lambda: calls.append(1), clock=clock)
        queue.reset()
        queue.undecoded_key_down(K_CONTROL)
        assert calls == []
        assert len(queue) == 4
