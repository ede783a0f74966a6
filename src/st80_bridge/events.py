"""
VM Event Protocol
=================

The Smalltalk-80 VM consumes two kinds of input events:

- **Undecoded key events**: raw down/up transitions for modifier keys and
  mouse buttons, identified by the special key numbers below.
- **Decoded key events**: fully resolved characters, each delivered as one
  logical keystroke.

Pointer motion is reported as absolute positions.

This module defines the key numbers, an abstract sink receiving the four
protocol operations, an in-memory recorder, and `EventWordQueue`, which
encodes the operations into the 16-bit input words the VM reads with its
input-word primitive.

Input Word Format
-----------------
Every event is preceded by a timestamp:

    0x0nnn            milliseconds since the previous event (< 4096)
    0x5000 hi lo      absolute time, seconds since 1901-01-01 (32 bit)

followed by the event words:

    0x1nnn            pointer x
    0x2nnn            pointer y
    0x3nnn            key down (key number or character)
    0x4nnn            key up (key number or character)

A decoded key produces a down word immediately followed by an up word.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# Special Key Numbers
# =============================================================================
# Mouse buttons follow the Blue Book numbering where the "red" (left) button
# has the highest number.

K_MOUSE_RIGHT = 128
K_MOUSE_MIDDLE = 129
K_MOUSE_LEFT = 130

K_KEYSET0 = 131  # right paddle
K_KEYSET1 = 132
K_KEYSET2 = 133
K_KEYSET3 = 134
K_KEYSET4 = 135  # left paddle

K_LEFT_SHIFT = 136
K_RIGHT_SHIFT = 137
K_CONTROL = 138
K_ALPHA_LOCK = 139

# Seconds between 1901-01-01 and 1970-01-01: 69 years with 17 leap years
SMALLTALK_EPOCH_OFFSET = ((69 * 365) + 17) * 86400

# Largest delta that fits the 12-bit delta-time word
MAX_DELTA_MS = 4095


# =============================================================================
# Event Values
# =============================================================================

class EventKind(Enum):
    """The four operations of the VM input protocol."""
    KEY_DOWN = "undecoded_key_down"
    KEY_UP = "undecoded_key_up"
    DECODED = "decoded_key_pressed"
    MOUSE_MOVED = "mouse_moved"


@dataclass(frozen=True)
class VmEvent:
    """
    One VM protocol operation.

    Attributes:
        kind: Which protocol operation this is
        value: Key number, character code, or pointer x
        y: Pointer y (MOUSE_MOVED only)
    """
    kind: EventKind
    value: int
    y: Optional[int] = None

    def deliver(self, sink: "VmEventSink") -> None:
        """Invoke the matching operation on a sink."""
        if self.kind is EventKind.KEY_DOWN:
            sink.undecoded_key_down(self.value)
        elif self.kind is EventKind.KEY_UP:
            sink.undecoded_key_up(self.value)
        elif self.kind is EventKind.DECODED:
            sink.decoded_key_pressed(self.value)
        else:
            sink.mouse_moved(self.value, self.y if self.y is not None else 0)

    def __str__(self) -> str:
        if self.kind is EventKind.MOUSE_MOVED:
            return f"{self.kind.value}({self.value}, {self.y})"
        if self.kind is EventKind.DECODED and 32 <= self.value < 127:
            return f"{self.kind.value}({chr(self.value)!r})"
        return f"{self.kind.value}(0x{self.value:02X})"


def key_down(code: int) -> VmEvent:
    """Build an undecoded key-down event."""
    return VmEvent(EventKind.KEY_DOWN, code)


def key_up(code: int) -> VmEvent:
    """Build an undecoded key-up event."""
    return VmEvent(EventKind.KEY_UP, code)


def decoded(char: int) -> VmEvent:
    """Build a decoded key event."""
    return VmEvent(EventKind.DECODED, char)


def moved(x: int, y: int) -> VmEvent:
    """Build a pointer move event."""
    return VmEvent(EventKind.MOUSE_MOVED, x, y)


# =============================================================================
# Event Sinks
# =============================================================================

class VmEventSink(ABC):
    """
    Receiver of the VM input protocol.

    Implementations are called on the host UI thread.
    """

    @abstractmethod
    def undecoded_key_down(self, code: int) -> None:
        """A modifier key or mouse button went down."""

    @abstractmethod
    def undecoded_key_up(self, code: int) -> None:
        """A modifier key or mouse button went up."""

    @abstractmethod
    def decoded_key_pressed(self, char: int) -> None:
        """A resolved character was typed."""

    @abstractmethod
    def mouse_moved(self, x: int, y: int) -> None:
        """The pointer moved to an absolute display position."""

    def emit(self, events: Tuple[VmEvent, ...]) -> None:
        """Deliver a batch of events in order."""
        for event in events:
            event.deliver(self)


class EventRecorder(VmEventSink):
    """
    Sink that records every operation in order.

    Useful for tests and for tracing what a translator produced:

        >>> rec = EventRecorder()
        >>> rec.decoded_key_pressed(ord("a"))
        >>> rec.events
        [VmEvent(kind=<EventKind.DECODED: 'decoded_key_pressed'>, value=97, y=None)]
    """

    def __init__(self) -> None:
        self.events: List[VmEvent] = []

    def undecoded_key_down(self, code: int) -> None:
        self.events.append(key_down(code))

    def undecoded_key_up(self, code: int) -> None:
        self.events.append(key_up(code))

    def decoded_key_pressed(self, char: int) -> None:
        self.events.append(decoded(char))

    def mouse_moved(self, x: int, y: int) -> None:
        self.events.append(moved(x, y))

    def clear(self) -> None:
        """Forget all recorded events."""
        self.events.clear()


class EventWordQueue(VmEventSink):
    """
    Sink encoding protocol operations into VM input words.

    The queue is filled on the host UI thread and drained by the VM thread,
    so all access to the word deque is serialized with a lock. The optional
    signal callback is invoked once per enqueued word; the VM uses it to
    signal its input semaphore.

    Example:
        >>> q = EventWordQueue(clock=lambda: 0.0)
        >>> q.undecoded_key_down(K_CONTROL)
        >>> [hex(w) for w in q.drain()]
        ['0x5000', '0x81c9', '0x4b00', '0x308a']
    """

    def __init__(
        self,
        signal: Optional[Callable[[], None]] = None,
        clock: Callable[[], float] = time.time,
        time_adjust_minutes: int = 0,
    ):
        """
        Initialize an empty queue.

        Args:
            signal: Called after each enqueued word (may be None)
            clock: Returns the current time in seconds since the Unix epoch
            time_adjust_minutes: Offset applied to absolute timestamps
        """
        self._words: Deque[int] = deque()
        self._lock = threading.Lock()
        self._signal = signal
        self._clock = clock
        self._time_adjust_seconds = time_adjust_minutes * 60
        self._last_event_ms: Optional[int] = None
        self._mouse_x = 0
        self._mouse_y = 0

    @property
    def mouse_position(self) -> Tuple[int, int]:
        """Last pointer position reported to the VM."""
        with self._lock:
            return self._mouse_x, self._mouse_y

    def __len__(self) -> int:
        with self._lock:
            return len(self._words)

    def reset(self, signal: Optional[Callable[[], None]] = None) -> None:
        """
        Install a new signal callback and drop all pending words.

        Called when the VM registers a new input semaphore.
        """
        logger.debug("event queue reset (%d pending words dropped)", len(self))
        with self._lock:
            self._signal = signal
            self._words.clear()

    def dequeue_word(self) -> Optional[int]:
        """
        Take the oldest word.

        Returns:
            The word, or None if the queue is empty
        """
        with self._lock:
            if not self._words:
                return None
            return self._words.popleft()

    def drain(self) -> List[int]:
        """Take all pending words."""
        with self._lock:
            words = list(self._words)
            self._words.clear()
        return words

    # =========================================================================
    # Protocol Operations
    # =========================================================================

    def mouse_moved(self, x: int, y: int) -> None:
        self._enqueue_timestamp()
        self._enqueue(0x1000 | (x & 0x0FFF))
        self._enqueue(0x2000 | (y & 0x0FFF))
        with self._lock:
            self._mouse_x = x
            self._mouse_y = y

    def decoded_key_pressed(self, char: int) -> None:
        self._enqueue_timestamp()
        self._enqueue(0x3000 | (char & 0x0FFF))
        self._enqueue(0x4000 | (char & 0x0FFF))

    def undecoded_key_down(self, code: int) -> None:
        self._enqueue_timestamp()
        self._enqueue(0x3000 | (code & 0x0FFF))

    def undecoded_key_up(self, code: int) -> None:
        self._enqueue_timestamp()
        self._enqueue(0x4000 | (code & 0x0FFF))

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def smalltalk_time(self, now: Optional[float] = None) -> int:
        """Seconds since 1901-01-01 UTC, including the time adjustment."""
        if now is None:
            now = self._clock()
        return int(now) + SMALLTALK_EPOCH_OFFSET + self._time_adjust_seconds

    def _enqueue_timestamp(self) -> None:
        now = self._clock()
        now_ms = int(now * 1000)
        last = self._last_event_ms
        if last is not None and 0 <= now_ms - last <= MAX_DELTA_MS:
            self._enqueue(now_ms - last)
        else:
            seconds = self.smalltalk_time(now) & 0xFFFFFFFF
            self._enqueue(0x5000)
            self._enqueue((seconds >> 16) & 0xFFFF)
            self._enqueue(seconds & 0xFFFF)
        self._last_event_ms = now_ms

    def _enqueue(self, word: int) -> None:
        with self._lock:
            self._words.append(word & 0xFFFF)
            signal = self._signal
        if signal is not None:
            signal()
