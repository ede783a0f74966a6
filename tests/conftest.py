"""
st80-bridge - Test Configuration
================================

Shared fixtures for the bridge tests. The VM and the host windowing
environment are replaced by an `EventRecorder` and a headless
`ImageSurface`.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import pytest

from st80_bridge.display.surface import ImageSurface
from st80_bridge.events import EventRecorder


# ═══════════════════════════════════════════════════════════════════════════════
# HELPER FIXTURES
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def recorder() -> EventRecorder:
    """Fixture: empty event recorder standing in for the VM."""
    return EventRecorder()


@pytest.fixture
def surface() -> ImageSurface:
    """Fixture: unfocused 640x480 headless surface with 16x16 cursors."""
    return ImageSurface(640, 480)


@pytest.fixture
def make_memory():
    """
    Fixture: factory for fake VM memory holding a display bitmap at word 1.

    Word 0 is a dummy so the bitmap offset is valid (offsets start at 1).
    The factory returns a (memory, raster) tuple.
    """
    def build(width, height, fill=0x0000, raster=None):
        if raster is None:
            raster = (width + 15) // 16
        return [0] + [fill] * (raster * height), raster
    return build
