"""
Cursor Shape Cache
==================

The Smalltalk-80 cursor is a 16x16 one-bit Form plus a hotspot. The VM
sets it whenever the application changes the pointer shape, which in
practice cycles through a handful of shapes (normal, wait, crosshair,
corner, ...). Building a platform cursor is comparatively expensive and
some toolkits leak them, so every shape is converted once and the
resulting handle is reused for every later request with the same bits
and hotspot.

Cache layout
------------
Entries are kept in a dict keyed by a hash over the rows and the hotspot.
Each key maps to a small bucket; a lookup verifies full equality against
the bucket entries so a hash collision can never hand out the wrong
cursor.

Cursor images
-------------
Platforms often refuse 16x16 cursors, so the image size is the platform's
best size for a 16x16 request, bucketed to 16, 32, 48 or 64 pixels. The
shape occupies the top-left 16x16 corner; everything else is transparent.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image

from st80_bridge.display.surface import HostSurface

logger = logging.getLogger(__name__)

CURSOR_ROWS = 16
CURSOR_COLUMNS = 16

# Transparent pixel for everything outside the shape
_TRANSPARENT = (0, 0, 0, 0)


def cursor_image_size(best_width: float) -> int:
    """
    Map the platform's best cursor width to the image size used.

    Args:
        best_width: Width the platform reports for a 16x16 request

    Returns:
        64, 48, 32 or 16
    """
    if best_width > 63:
        return 64
    if best_width > 47:
        return 48
    if best_width > 31:
        return 32
    return 16


def _clamp_hotspot(value: int) -> int:
    return max(0, min(CURSOR_COLUMNS - 1, value))


@dataclass(frozen=True)
class CursorShape:
    """
    A normalized cursor: exactly 16 rows of 16 bits and a hotspot in 0..15.

    Equality and hashing cover rows and hotspot together, so equal bits
    with different hotspots are different shapes.
    """
    rows: Tuple[int, ...]
    hotspot_x: int
    hotspot_y: int

    @classmethod
    def from_words(cls, words: Sequence[int], hotspot_x: int, hotspot_y: int) -> "CursorShape":
        """
        Normalize VM cursor words.

        Missing rows are blank, extra rows are dropped, rows are masked to
        16 bits (the VM may hand over signed shorts), and the hotspot is
        clamped into the shape.
        """
        rows = [w & 0xFFFF for w in list(words)[:CURSOR_ROWS]]
        rows.extend([0] * (CURSOR_ROWS - len(rows)))
        return cls(tuple(rows), _clamp_hotspot(hotspot_x), _clamp_hotspot(hotspot_y))

    @property
    def hotspot(self) -> Tuple[int, int]:
        return self.hotspot_x, self.hotspot_y

    def content_hash(self) -> int:
        """Combined hash over rows and hotspot."""
        return hash((self.rows, self.hotspot_x, self.hotspot_y))

    def render(self, size: int, color: Tuple[int, int, int]) -> Image.Image:
        """
        Draw the shape into a transparent RGBA image.

        Args:
            size: Edge length of the image (at least 16)
            color: RGB of the opaque pixels

        Returns:
            RGBA image; set bits are opaque `color`, everything else transparent
        """
        image = Image.new("RGBA", (size, size), _TRANSPARENT)
        opaque = (color[0], color[1], color[2], 255)
        pixels = image.load()
        for y, row in enumerate(self.rows):
            bit = 0x8000
            for x in range(CURSOR_COLUMNS):
                if row & bit:
                    pixels[x, y] = opaque
                bit >>= 1
        return image


@dataclass(frozen=True)
class CachedCursor:
    """A cache entry: the shape and the platform handle built for it."""
    shape: CursorShape
    handle: object


class CursorCache:
    """
    Content-addressed cache of platform cursors.

    Example:
        >>> from st80_bridge.display.surface import ImageSurface
        >>> surface = ImageSurface()
        >>> cache = CursorCache(surface)
        >>> arrow = [0x8000 >> i for i in range(16)]
        >>> first = cache.apply_cursor(arrow, 0, 0)
        >>> cache.apply_cursor(arrow, 0, 0) is first
        True
        >>> surface.cursors_created
        1
    """

    def __init__(self, surface: HostSurface, color: Tuple[int, int, int] = (0, 0, 0)):
        """
        Initialize the cache.

        The cursor image size is determined here, once, from the surface.

        Args:
            surface: Surface creating and applying platform cursors
            color: RGB of opaque cursor pixels
        """
        self._surface = surface
        self._color = color
        best_width, _ = surface.best_cursor_size(CURSOR_COLUMNS, CURSOR_ROWS)
        self.image_size = cursor_image_size(best_width)
        self._entries: Dict[int, List[CachedCursor]] = {}
        self.hits = 0
        self.misses = 0
        logger.debug("cursor images are %dx%d", self.image_size, self.image_size)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._entries.values())

    def lookup(self, shape: CursorShape) -> Optional[object]:
        """
        Find the handle cached for a shape.

        Returns:
            The platform handle, or None if the shape was never applied
        """
        for entry in self._entries.get(shape.content_hash(), ()):
            if entry.shape == shape:
                return entry.handle
        return None

    def apply_cursor(self, rows: Sequence[int], hotspot_x: int, hotspot_y: int) -> object:
        """
        Make a cursor shape the active pointer, reusing a cached handle.

        Args:
            rows: 16 words of cursor bits, MSB leftmost
            hotspot_x: Hotspot column, 0..15
            hotspot_y: Hotspot row, 0..15

        Returns:
            The platform handle now active

        Raises:
            SurfaceError: If the surface cannot build the cursor
        """
        shape = CursorShape.from_words(rows, hotspot_x, hotspot_y)

        handle = self.lookup(shape)
        if handle is not None:
            self.hits += 1
            self._surface.apply_cursor(handle)
            return handle

        self.misses += 1
        image = shape.render(self.image_size, self._color)
        handle = self._surface.create_cursor(image, shape.hotspot)
        self._entries.setdefault(shape.content_hash(), []).append(CachedCursor(shape, handle))
        logger.debug(
            "new cursor #%d, hotspot (%d, %d)", len(self), shape.hotspot_x, shape.hotspot_y
        )
        self._surface.apply_cursor(handle)
        return handle
