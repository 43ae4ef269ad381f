"""Exceptions raised by urdfix.

Only conditions that leave no usable Document (or no usable configuration)
are raised. Structural problems in a well-formed file are reported as
diagnostics instead.
"""

from typing import Optional


class UrdfixError(Exception):
    """Base class for urdfix errors."""


class UrdfParseError(UrdfixError):
    """The input is not a well-formed URDF document.

    Attributes:
        source: File name or other label of the input, if known.
        line: 1-based line of the error, if the XML parser reported one.
    """

    def __init__(self, message: str, *, source: Optional[str] = None, line: Optional[int] = None):
        self.source = source
        self.line = line
        location = ""
        if source:
            location = f"{source}:{line}: " if line else f"{source}: "
        elif line:
            location = f"line {line}: "
        super().__init__(f"{location}{message}")


class ConfigError(UrdfixError, ValueError):
    """An invalid configuration value."""


class UnknownPassError(ConfigError):
    """A fix pass name that the pipeline does not provide."""
