"""Error taxonomy shared by the partitioning, access, and migration layers."""

from enum import Enum


class FieldOpsError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(FieldOpsError):
    """Raised for an unknown entity kind, a malformed registry, or missing run parameters.

    Fatal to the operation that raised it; never retried.
    """


class UnknownPartitionError(FieldOpsError):
    """Raised when an AC key (or partition name) is not in the registry.

    Batch engines skip the affected AC and continue; request handlers
    report it as "no such AC".

    Args:
        ac_key: The offending AC key or identifier, when known.
        message: Optional override for the error message.
    """

    def __init__(self, ac_key: object, message: str | None = None) -> None:
        self.ac_key = ac_key
        super().__init__(message or f"Unknown AC partition: {ac_key!r}")


class AuthorizationError(FieldOpsError):
    """Raised when a caller's access scope forbids the requested partition access."""


class BatchWriteError(FieldOpsError):
    """Raised when a bulk write partially or fully fails.

    Batches committed before the failure stay committed.

    Args:
        collection: Name of the collection being written.
        message: Human-readable error description.
        batch_index: Index of the failing batch within the current run, if known.
    """

    def __init__(self, collection: str, message: str, batch_index: int | None = None) -> None:
        self.collection = collection
        self.message = message
        self.batch_index = batch_index
        super().__init__(f"{collection}: {message}")


class StoreReadError(FieldOpsError):
    """Raised when the store cannot read a collection or list collections.

    Batch engines mark the affected partition FAILED and continue.

    Args:
        collection: Name of the collection being read.
        message: Human-readable error description.
    """

    def __init__(self, collection: str, message: str) -> None:
        self.collection = collection
        self.message = message
        super().__init__(f"{collection}: {message}")


class Outcome(Enum):
    """Non-error outcomes of normalization steps."""

    CONVERSION_SKIPPED = "conversion_skipped"


# A value mismatches its declared type but is not unambiguously convertible;
# the field is left as-is and not counted as fixed.
ConversionSkipped = Outcome.CONVERSION_SKIPPED
