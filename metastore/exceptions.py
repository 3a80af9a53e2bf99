"""Error taxonomy shared by the stores, the coordinator and the API layer."""


class MetastoreError(Exception):
    code = "INTERNAL_ERROR"


class ValidationError(MetastoreError, ValueError):
    """Input rejected before any mutation was attempted."""

    code = "VALIDATION_ERROR"


class ConflictError(MetastoreError):
    """The remote document changed between load and save."""

    code = "CONFLICT"


class StoreUnavailableError(MetastoreError):
    """The remote document could not be fetched or parsed."""

    code = "STORE_UNAVAILABLE"


class ObjectNotFoundError(MetastoreError, FileNotFoundError):
    code = "NOT_FOUND"

    def __init__(self, key: str):
        super().__init__(f"Storage key not found: {key}")
        self.key = key
