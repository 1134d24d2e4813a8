"""Exception types raised by the compression engines."""


class CrnchError(RuntimeError):
    """Base class for compression failures reported to the user."""


class ToolError(CrnchError):
    """A tool pass with no fallback path exited with an error."""


class CompressionCancelled(CrnchError):
    """The user refused at a consent prompt that had no softer outcome."""


class UnsupportedFormatError(CrnchError, ValueError):
    """The input file's extension has no compression engine."""
