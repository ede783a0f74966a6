"""
st80-bridge - Display and Input Bridge for a Smalltalk-80 VM
============================================================

This package connects the 1-bit display memory and the input event queue
of a Smalltalk-80 virtual machine to a host windowing environment.

Main Components
---------------
- **display**: framebuffer synchronization and cursor cache
    Copies changed scan lines of the VM display into a local bitmap and
    turns 16x16 cursor forms into reusable platform cursors

- **input**: keyboard and pointer translation
    Decodes host key notifications into the VM's modifier/character
    events and forwards clamped, de-duplicated pointer activity

- **events**: the VM input protocol
    Key numbers, event sinks and the 16-bit input word encoding

- **bridge**: the DisplayBridge orchestrator
    Wires everything together and keeps host callbacks exception-free

Quick Start
-----------
Drive the bridge from a VM and a host toolkit:
    from st80_bridge import DisplayBridge

    bridge = DisplayBridge.with_event_queue(signal=vm_input_semaphore.signal)
    bridge.register_display()

    # VM thread, after drawing on the display form
    bridge.note_display_change(top, lines)
    bridge.refresh(memory, start, 640, 40, 480)

    # Host UI thread
    bridge.render_frame()
    bridge.key_typed(ord("a"))

    # VM input primitive
    word = bridge.sink.dequeue_word()

Or use the command-line tool:
    $ st80view render display.bin --width 640 --height 480 -o screen.png
    $ st80view cursor 8000 c000 e000 f000 --hotspot 0 0 -o arrow.png

Version History
---------------
1.0.0 - Initial release with framebuffer sync, cursor cache and input translation
"""

__version__ = "1.0.0"
__author__ = "Hugo José Pinto & Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from st80_bridge.bridge import DisplayBridge
from st80_bridge.config import BridgeConfig
from st80_bridge.display import (
    CursorCache,
    CursorShape,
    DirtyRange,
    DirtyTracker,
    Framebuffer,
    FramebufferSync,
    HostSurface,
    ImageSurface,
)
from st80_bridge.errors import BridgeError, ConfigError, DumpFormatError, SurfaceError
from st80_bridge.events import (
    K_ALPHA_LOCK,
    K_CONTROL,
    K_LEFT_SHIFT,
    K_MOUSE_LEFT,
    K_MOUSE_MIDDLE,
    K_MOUSE_RIGHT,
    K_RIGHT_SHIFT,
    EventRecorder,
    EventWordQueue,
    VmEvent,
    VmEventSink,
)
from st80_bridge.input import ChordState, KeyTranslator, ModifierState, PointerTranslator

__all__ = [
    # Version
    "__version__",

    # Main API
    "DisplayBridge",
    "BridgeConfig",

    # Display
    "CursorCache",
    "CursorShape",
    "DirtyRange",
    "DirtyTracker",
    "Framebuffer",
    "FramebufferSync",
    "HostSurface",
    "ImageSurface",

    # Input
    "ChordState",
    "KeyTranslator",
    "ModifierState",
    "PointerTranslator",

    # Events
    "K_ALPHA_LOCK",
    "K_CONTROL",
    "K_LEFT_SHIFT",
    "K_MOUSE_LEFT",
    "K_MOUSE_MIDDLE",
    "K_MOUSE_RIGHT",
    "K_RIGHT_SHIFT",
    "EventRecorder",
    "EventWordQueue",
    "VmEvent",
    "VmEventSink",

    # Errors
    "BridgeError",
    "ConfigError",
    "DumpFormatError",
    "SurfaceError",
]
