"""Domain exceptions for metric configuration and scaling safety checks. No infrastructure imports."""


class DomainError(Exception):
    """Base for all domain-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidMetricConfigError(DomainError):
    """Raised when a metric configuration cannot be evaluated (e.g. unparseable or non-positive target)."""


class TopologyViolationError(DomainError):
    """Raised when a (primaries, secondaries) pair is not a valid cluster topology."""


class QuorumProtectionError(DomainError):
    """Raised when fewer healthy primaries are available than quorum protection requires."""
