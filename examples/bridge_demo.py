#!/usr/bin/env python3
"""
st80-bridge Demo
================

This script drives the bridge without a window or a real VM to show:
1. Building a bridge that feeds the VM input word queue
2. Drawing into a fake display memory and refreshing the changed lines
3. Setting a cursor shape (and reusing it)
4. Typing a Control chord and moving the pointer
5. Saving the rendered frame

Usage:
    source .venv/bin/activate
    python examples/bridge_demo.py

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

from pathlib import Path

from st80_bridge import BridgeConfig, DisplayBridge
from st80_bridge.input import CHAR_UNDEFINED, HOST_CONTROL

WIDTH = 640
HEIGHT = 480
RASTER = WIDTH // 16


def main():
    # Output directory for the rendered frame
    output_dir = Path("trash")
    output_dir.mkdir(exist_ok=True)

    # ==========================================================================
    # 1. Create a bridge
    # ==========================================================================
    # The default surface is a headless ImageSurface; a real host passes its
    # own HostSurface implementation instead.

    print("Creating bridge...")
    words_signalled = []
    bridge = DisplayBridge.with_event_queue(
        BridgeConfig(width=WIDTH, height=HEIGHT),
        signal=lambda: words_signalled.append(1),
    )
    queue = bridge.sink

    # ==========================================================================
    # 2. Draw into the display memory
    # ==========================================================================
    # Word 0 stands in for the object memory before the display bitmap.

    memory = [0] * (1 + RASTER * HEIGHT)
    start = 1
    bridge.register_display()

    # A black frame 8 lines high at the top, and a checkerboard band below it
    for line in range(8):
        for word in range(RASTER):
            memory[start + line * RASTER + word] = 0xFFFF
    bridge.note_display_change(0, 8)

    for line in range(100, 164):
        pattern = 0xAAAA if line % 2 else 0x5555
        for word in range(RASTER):
            memory[start + line * RASTER + word] = pattern
    bridge.note_display_change(100, 64)

    print(f"  Refresh copied: {bridge.refresh(memory, start, WIDTH, RASTER, HEIGHT)}")
    print(f"  Frame presented: {bridge.render_frame()}")

    # ==========================================================================
    # 3. Set the cursor
    # ==========================================================================

    arrow = [0xFFFF >> (16 - i) << (16 - i) for i in range(1, 17)]
    first = bridge.set_cursor(arrow, 0, 0)
    again = bridge.set_cursor(arrow, 0, 0)
    print(f"\nCursor: {first} (reused: {again is first})")

    # ==========================================================================
    # 4. Keyboard and pointer
    # ==========================================================================

    bridge.key_pressed(HOST_CONTROL, CHAR_UNDEFINED)
    bridge.key_pressed(67, ord("c"))
    bridge.key_released(67, ord("c"))
    bridge.key_released(HOST_CONTROL, CHAR_UNDEFINED)
    bridge.pointer_moved(2000, 100)
    bridge.pointer_pressed(1, 2000, 100)
    bridge.pointer_released(1, 2000, 100)

    words = queue.drain()
    print(f"\nInput words ({len(words)}, {len(words_signalled)} signals):")
    print("  " + " ".join(f"{w:04X}" for w in words))
    print(f"  Pointer at {queue.mouse_position}")

    # ==========================================================================
    # 5. Save the frame
    # ==========================================================================

    frame_path = output_dir / "bridge_frame.png"
    bridge.surface.frame.save(frame_path)
    print(f"\nFrame saved to {frame_path}")
    print(f"Errors caught: {bridge.errors}")


if __name__ == "__main__":
    main()
