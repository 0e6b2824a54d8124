"""
Error Types for GPS Track Analysis

Decode failures raised when serialized tracks, activities or personal-best
registries coming from storage or a foreign caller cannot be parsed.
"""


class TrackDecodeError(ValueError):
    """Raised when serialized track data is malformed.

    The core never attempts partial recovery; the original parser error is
    chained as ``__cause__``.
    """
