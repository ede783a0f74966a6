"""
Host Surface Interface
======================

The bridge never creates windows itself. Everything it needs from the
host windowing environment goes through a `HostSurface`:

- geometry: the size of the rendered display and relayout requests
- redraw scheduling: asynchronous "please repaint" notifications
- cursors: building a platform cursor from an RGBA image and hotspot,
  and making it the active pointer shape
- focus: whether the display currently receives keyboard input

`ImageSurface` is a headless implementation backed by Pillow. It keeps
counters for every request so tests can assert on them, and it is what
the command-line tools render into.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)


class HostSurface(ABC):
    """
    The host-side render target of the bridge.

    All methods are called on the host UI thread.
    """

    @property
    @abstractmethod
    def width(self) -> int:
        """Current display width in pixels."""

    @property
    @abstractmethod
    def height(self) -> int:
        """Current display height in pixels."""

    @abstractmethod
    def resize(self, width: int, height: int) -> None:
        """Adopt a new display geometry."""

    @abstractmethod
    def request_relayout(self) -> None:
        """Ask the host to re-pack the window around the new geometry."""

    @abstractmethod
    def request_redraw(self) -> None:
        """Schedule an asynchronous repaint. Must not block."""

    @abstractmethod
    def best_cursor_size(self, width: int, height: int) -> Tuple[int, int]:
        """Cursor size the platform supports closest to the preferred size."""

    @abstractmethod
    def create_cursor(self, image: Image.Image, hotspot: Tuple[int, int]) -> object:
        """
        Build a platform cursor.

        Args:
            image: RGBA image of the platform cursor size
            hotspot: (x, y) hotspot inside the image

        Returns:
            Opaque platform cursor handle

        Raises:
            SurfaceError: If the platform refuses the cursor
        """

    @abstractmethod
    def apply_cursor(self, handle: object) -> None:
        """Make a previously created cursor the active pointer shape."""

    @abstractmethod
    def has_focus(self) -> bool:
        """True if the display receives keyboard input."""

    @abstractmethod
    def request_focus(self) -> None:
        """Ask the host to move keyboard focus to the display."""

    def present(self, image: Image.Image) -> None:
        """Show a rendered frame. Hosts that paint on their own may ignore it."""


# =============================================================================
# Headless Pillow Surface
# =============================================================================

_cursor_ids = itertools.count(1)


@dataclass(eq=False)
class CursorHandle:
    """
    Cursor handle issued by ImageSurface.

    Handles compare by identity, like the platform objects they stand for.
    """
    image: Image.Image
    hotspot: Tuple[int, int]
    cursor_id: int = field(default_factory=lambda: next(_cursor_ids))

    def __repr__(self) -> str:
        return f"CursorHandle(#{self.cursor_id}, hotspot={self.hotspot})"


class ImageSurface(HostSurface):
    """
    Headless surface keeping the last presented frame as a Pillow image.

    Example:
        >>> surface = ImageSurface(640, 480)
        >>> surface.request_redraw()
        >>> surface.redraw_requests
        1
    """

    def __init__(
        self,
        width: int = 640,
        height: int = 480,
        cursor_size: int = 16,
        focused: bool = False,
    ):
        """
        Initialize the surface.

        Args:
            width: Initial width in pixels
            height: Initial height in pixels
            cursor_size: Cursor edge length reported by best_cursor_size
            focused: Whether the surface starts with keyboard focus
        """
        self._width = width
        self._height = height
        self._cursor_size = cursor_size
        self._focused = focused

        self.frame: Optional[Image.Image] = None
        self.active_cursor: Optional[CursorHandle] = None

        self.relayout_requests = 0
        self.redraw_requests = 0
        self.focus_requests = 0
        self.cursors_created = 0

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def resize(self, width: int, height: int) -> None:
        logger.debug("surface resized to %dx%d", width, height)
        self._width = width
        self._height = height

    def request_relayout(self) -> None:
        self.relayout_requests += 1

    def request_redraw(self) -> None:
        self.redraw_requests += 1

    def best_cursor_size(self, width: int, height: int) -> Tuple[int, int]:
        return self._cursor_size, self._cursor_size

    def create_cursor(self, image: Image.Image, hotspot: Tuple[int, int]) -> CursorHandle:
        self.cursors_created += 1
        return CursorHandle(image=image.copy(), hotspot=hotspot)

    def apply_cursor(self, handle: object) -> None:
        self.active_cursor = handle  # type: ignore[assignment]

    def has_focus(self) -> bool:
        return self._focused

    def request_focus(self) -> None:
        self.focus_requests += 1
        self._focused = True

    def present(self, image: Image.Image) -> None:
        self.frame = image
