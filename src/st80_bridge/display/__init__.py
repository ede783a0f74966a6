"""
Display Side of the Bridge
==========================

- `framebuffer.py`: dirty-range copy of VM display memory into a local bitmap
- `cursor.py`: content-addressed cache of platform cursors
- `surface.py`: host surface interface and the headless Pillow surface
"""

from .surface import HostSurface, ImageSurface, CursorHandle
from .framebuffer import DirtyRange, DirtyTracker, Framebuffer, FramebufferSync
from .cursor import CachedCursor, CursorCache, CursorShape, cursor_image_size

__all__ = [
    # Surface
    "HostSurface",
    "ImageSurface",
    "CursorHandle",

    # Framebuffer
    "DirtyRange",
    "DirtyTracker",
    "Framebuffer",
    "FramebufferSync",

    # Cursor
    "CachedCursor",
    "CursorCache",
    "CursorShape",
    "cursor_image_size",
]
