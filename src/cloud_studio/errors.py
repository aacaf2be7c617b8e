"""
Error types raised while ingesting point-cloud files.

Every fatal condition for a single file is a PointCloudError carrying the
file name and a human-readable reason, so a batch caller can report which
files failed and why. Malformed rows are never raised; parsers count them.
"""

__all__ = [
    "PointCloudError",
    "EmptyPointCloudError",
    "UnrecognizedFormatError",
    "DecodeDelegateError",
    "UnsupportedFileTypeError",
]


class PointCloudError(ValueError):
    """A file could not be turned into a point cloud."""

    def __init__(self, reason: str, name: str = ""):
        self.reason = reason
        self.name = name
        super().__init__(f"{name}: {reason}" if name else reason)


class EmptyPointCloudError(PointCloudError):
    """Parsing finished without a single valid point."""


class UnrecognizedFormatError(PointCloudError):
    """The file does not carry the expected format signature."""


class DecodeDelegateError(PointCloudError):
    """The fallback loader failed to decode the file."""


class UnsupportedFileTypeError(PointCloudError):
    """No parser is registered for the file's extension."""
