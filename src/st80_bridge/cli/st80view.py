"""
st80view - Display and Cursor Rendering Command-Line Interface
==============================================================

This module implements a small command-line tool that runs the bridge's
display path headless and writes the result as PNG images. It is handy for
checking what a VM actually put into its display memory, and for looking
at cursor forms without starting a window.

Usage Examples
--------------
Render a display memory dump (big-endian 16-bit words):
    $ st80view render display.bin --width 640 --height 480 -o screen.png

Dump taken from the middle of the object memory:
    $ st80view render heap.bin --width 640 --height 480 --offset 0x1234 -o screen.png

Render a cursor form (16 hex words, missing rows are blank):
    $ st80view cursor 8000 c000 e000 f000 f800 --hotspot 0 0 -o arrow.png

Exit Codes
----------
0 - Success
1 - Malformed dump or surface error
2 - Invalid arguments
3 - Internal error

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import logging
import struct
from pathlib import Path
from typing import List, Optional, Tuple

import click
from PIL import Image

from st80_bridge import __version__
from st80_bridge.cli.errors import handle_cli_exception
from st80_bridge.display.cursor import CursorCache
from st80_bridge.display.framebuffer import FramebufferSync
from st80_bridge.display.surface import ImageSurface
from st80_bridge.errors import DumpFormatError

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """Shared context for CLI commands."""

    def __init__(self) -> None:
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


def read_word_dump(path: Path) -> List[int]:
    """
    Read a file of big-endian 16-bit words.

    Raises:
        DumpFormatError: If the file has an odd number of bytes
    """
    data = path.read_bytes()
    if len(data) % 2:
        raise DumpFormatError(f"odd length {len(data)}, expected 16-bit words", str(path))
    return list(struct.unpack(f">{len(data) // 2}H", data))


def parse_int(value: str) -> int:
    """Parse decimal, 0x-hex or $-hex integers."""
    value = value.strip()
    if value.startswith("$"):
        return int(value[1:], 16)
    return int(value, 0)


def parse_color(value: str) -> Tuple[int, int, int]:
    """Parse an "r,g,b" color."""
    try:
        r, g, b = (int(part) for part in value.split(","))
    except ValueError:
        raise click.BadParameter(f"expected r,g,b but got {value!r}")
    if not all(0 <= c <= 255 for c in (r, g, b)):
        raise click.BadParameter(f"color components must be 0..255: {value!r}")
    return r, g, b


def scale_image(image: Image.Image, scale: int) -> Image.Image:
    """Enlarge an image by an integer factor without smoothing."""
    if scale == 1:
        return image
    return image.resize((image.width * scale, image.height * scale), Image.NEAREST)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(__version__, "--version", "-V", prog_name="st80view")
@pass_context
def main(ctx: Context, verbose: bool) -> None:
    """
    Render Smalltalk-80 display memory and cursor forms to PNG.

    \b
    Commands:
      render    Render a display memory dump
      cursor    Render a 16x16 cursor form
    """
    ctx.verbose = verbose
    ctx.setup_logging()


# =============================================================================
# Render Command
# =============================================================================

@main.command("render")
@click.argument(
    "dump_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--width", type=click.IntRange(min=1), required=True, help="Display width in pixels")
@click.option("--height", type=click.IntRange(min=1), required=True, help="Display height in lines")
@click.option(
    "--raster",
    type=click.IntRange(min=1),
    default=None,
    help="Words per scan line (default: width rounded up to 16 bits)",
)
@click.option(
    "--offset",
    type=str,
    default="0",
    help="Word index of the bitmap inside the dump (default: 0)",
)
@click.option("--scale", type=click.IntRange(min=1, max=8), default=1, help="Pixel scale factor")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output PNG file",
)
@pass_context
def cmd_render(
    ctx: Context,
    dump_file: Path,
    width: int,
    height: int,
    raster: Optional[int],
    offset: str,
    scale: int,
    output: Path,
) -> None:
    """
    Render a display memory dump to PNG.

    DUMP_FILE holds big-endian 16-bit words, most significant bit leftmost,
    a set bit being black.
    """
    try:
        try:
            start = parse_int(offset)
        except ValueError:
            raise click.BadParameter(f"invalid offset {offset!r}")
        if raster is None:
            raster = (width + 15) // 16

        words = read_word_dump(dump_file)
        needed = start + raster * height
        if start < 0 or len(words) < needed:
            raise DumpFormatError(
                f"{len(words)} words, need {needed} for {width}x{height} (raster {raster})",
                str(dump_file),
            )

        surface = ImageSurface(width, height)
        sync = FramebufferSync(surface)
        # Index 0 means "no display" to the sync, so address the dump from 1
        memory = [0] + words
        sync.sync(memory, start + 1, width, raster, height, 0, height - 1)

        scale_image(sync.to_image(), scale).save(output, format="PNG")
        click.echo(f"Rendered {width}x{height} display to {output}")

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Cursor Command
# =============================================================================

@main.command("cursor")
@click.argument("words", nargs=-1, required=True)
@click.option(
    "--hotspot",
    type=(int, int),
    default=(0, 0),
    help="Hotspot x y (clamped to 0..15)",
)
@click.option(
    "--size",
    type=click.Choice(["16", "32", "48", "64"]),
    default="16",
    help="Platform cursor size (default: 16)",
)
@click.option("--color", type=str, default="0,0,0", help="Cursor color as r,g,b")
@click.option("--scale", type=click.IntRange(min=1, max=8), default=1, help="Pixel scale factor")
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output PNG file",
)
@pass_context
def cmd_cursor(
    ctx: Context,
    words: Tuple[str, ...],
    hotspot: Tuple[int, int],
    size: str,
    color: str,
    scale: int,
    output: Path,
) -> None:
    """
    Render a cursor form to PNG.

    WORDS are up to 16 hexadecimal row masks, top row first.
    """
    try:
        try:
            rows = [int(w, 16) for w in words]
        except ValueError:
            raise click.BadParameter(f"cursor rows must be hexadecimal: {' '.join(words)}")
        if len(rows) > 16:
            raise click.BadParameter(f"at most 16 rows, got {len(rows)}")

        surface = ImageSurface(cursor_size=int(size))
        cache = CursorCache(surface, parse_color(color))
        handle = cache.apply_cursor(rows, hotspot[0], hotspot[1])

        scale_image(handle.image, scale).save(output, format="PNG")
        click.echo(
            f"Rendered {cache.image_size}x{cache.image_size} cursor "
            f"(hotspot {handle.hotspot[0]},{handle.hotspot[1]}) to {output}"
        )

    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
