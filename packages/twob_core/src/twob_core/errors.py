"""Error taxonomy for the ingestion path.

None of these are allowed to escape the subscription loop. They are raised
inside a single stage and turned into an outcome (or a log line) by the stage
that owns them.
"""


class IngestionError(Exception):
    """Base class for errors raised while ingesting program events."""


class AttributionInconsistency(IngestionError):
    """Completion marker seen while the call stack was empty."""

    def __init__(self, line: str, signature: str = "", slot: int = 0):
        self.line = line
        self.signature = signature
        self.slot = slot
        super().__init__(
            f"Unexpected empty call stack while parsing logs "
            f"(signature: {signature}, slot: {slot}): {line!r}"
        )


class DecodeError(IngestionError):
    """Payload matched a known discriminator but its body did not parse."""

    def __init__(self, kind: str, reason: str, signature: str = "", slot: int = 0):
        self.kind = kind
        self.reason = reason
        self.signature = signature
        self.slot = slot
        super().__init__(
            f"{kind} decode error (signature: {signature}, slot: {slot}): {reason}"
        )


class UnknownDiscriminator(IngestionError):
    """Payload discriminator is not present in the schema registry."""

    def __init__(self, key: bytes):
        self.key = bytes(key)
        super().__init__(f"Unknown event discriminator 0x{self.key.hex()}")


class PersistenceError(IngestionError):
    """Store rejected or failed a write for a reason other than a duplicate key."""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(f"{message}: {cause}" if cause else message)
