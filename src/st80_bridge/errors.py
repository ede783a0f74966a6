"""
st80-bridge Error Hierarchy
===========================

This module defines the exception hierarchy for the display/input bridge.
All exceptions inherit from BridgeError, allowing callers to catch all
bridge-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
BridgeError (base)
├── ConfigError - invalid bridge configuration values
├── SurfaceError - host surface refused an operation
└── DumpFormatError - display memory dump cannot be interpreted

Design Philosophy
-----------------
The bridge itself has no fatal paths: empty dirty ranges, missing display
memory and out-of-range coordinates are all handled silently. Exceptions
are reserved for configuration mistakes made by the embedding application,
for host surfaces that cannot honour a request, and for the command-line
tools reading files supplied by the user.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class BridgeError(Exception):
    """
    Base exception for all st80-bridge errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch all bridge-related errors with a single except clause:

        try:
            config = BridgeConfig(width=0).validate()
        except BridgeError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigError(BridgeError):
    """
    Invalid configuration value.

    Attributes:
        field: Name of the offending configuration field
        value: The rejected value
    """

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"invalid {field} {value!r}: {reason}")


# =============================================================================
# Host Surface Exceptions
# =============================================================================

class SurfaceError(BridgeError):
    """
    The host surface could not perform a requested operation.

    Raised by HostSurface implementations, for example when the windowing
    toolkit refuses to build a custom cursor from an image.
    """

    def __init__(self, operation: str, detail: Optional[str] = None):
        self.operation = operation
        self.detail = detail
        message = f"surface operation '{operation}' failed"
        if detail:
            message += f": {detail}"
        super().__init__(message)


# =============================================================================
# Dump File Exceptions
# =============================================================================

class DumpFormatError(BridgeError):
    """
    A display memory dump is malformed.

    Raised by the command-line tools when a dump file is too short for the
    requested geometry or has an odd number of bytes.
    """

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        if filename:
            message = f"{filename}: {message}"
        super().__init__(message)
