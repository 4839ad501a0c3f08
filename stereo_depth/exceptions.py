"""
Error Taxonomy for the Stereo Depth Pipeline

All errors derive from ValueError so callers that already catch ValueError
keep working. I/O failures are not wrapped and surface as OSError.
"""


class StereoDepthError(ValueError):
    """Base class for deterministic, input-driven pipeline failures."""


class ConfigurationError(StereoDepthError):
    """Bad or missing calibration, or degenerate stereo geometry."""


class InvalidParameterError(StereoDepthError):
    """Algorithm parameter out of its admissible range."""


class DimensionMismatchError(StereoDepthError):
    """Image or matrix dimensions do not agree."""


class UnsupportedFormatError(StereoDepthError):
    """Input array has a pixel type the stage cannot process."""
