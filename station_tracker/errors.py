"""Exception taxonomy for the orbital-data lifecycle."""


class TrackerError(Exception):
    """Base class for all station tracker errors."""


class EncodingError(TrackerError, ValueError):
    """A numeric field cannot be represented in its fixed-width TLE column."""

    def __init__(self, field, value, reason):
        self.field = field
        self.value = value
        super().__init__(f"Cannot encode {field}={value!r}: {reason}")


class ElementFormatError(TrackerError, ValueError):
    """Two-line element text is malformed."""


class PropagationFailure(TrackerError):
    """SGP4 reported a nonzero error code or produced no usable solution."""

    def __init__(self, code, message):
        self.code = code
        self.message = message
        super().__init__(f"SGP4 error {code}: {message}")


class NetworkAcquisitionFailure(TrackerError):
    """Every element-set endpoint failed."""


class PersistenceFailure(TrackerError):
    """The key/value store could not be read or written."""


class ValidationMismatch(TrackerError):
    """A response did not contain the tracked station."""
