"""
st80-bridge Command-Line Interface
==================================

This package provides the command-line tool for the bridge:

- **st80view**: render VM display memory dumps and cursor shapes to PNG

The tool is a Click-based CLI application with comprehensive help and
error reporting.
"""

__all__ = ["st80view"]
