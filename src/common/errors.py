"""Error taxonomy shared by the booking pipeline."""


class BookingError(Exception):
    """Base class for all booking pipeline errors."""


class ValidationError(BookingError, ValueError):
    """User-facing, field-specific error, recoverable by re-entry."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def __repr__(self) -> str:
        return f"ValidationError(field={self.field!r}, message={self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.field, self.message) == (other.field, other.message)

    def __hash__(self) -> int:
        return hash((self.field, self.message))


class InvalidCoordinatesError(ValidationError):
    """Coordinates that are not finite or fall outside valid ranges."""

    def __init__(self, field: str, value: object):
        super().__init__(field, f"Invalid coordinate {field}={value!r}")
        self.value = value


class GeocodingUnavailable(BookingError):
    """Network or provider failure while geocoding."""


class GeolocationDenied(BookingError):
    """Device position could not be obtained (denied, unsupported or timed out)."""


class StorageUnavailable(BookingError):
    """The persistent store rejected a read or write."""
