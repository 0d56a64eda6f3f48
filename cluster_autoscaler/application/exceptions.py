"""Application-layer exceptions. Do not reuse domain exceptions."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cluster_autoscaler.application.autoscaler import ReconcileResult


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class MetricsCollectionError(ApplicationError):
    """Raised when the cluster's own managed resources (StatefulSet, pods) cannot be read."""


class ReplicaWriteError(ApplicationError):
    """Raised when writing a role group's desired replica count fails (including optimistic-concurrency conflicts)."""


class ReconciliationError(ApplicationError):
    """
    Aggregate of per-role failures in one reconciliation pass. Carries the partial
    result; role groups that were already applied are not rolled back.
    """

    def __init__(self, errors: dict[str, Exception], result: "ReconcileResult | None" = None) -> None:
        self.errors = errors
        self.result = result
        detail = "; ".join(f"{role}: {err}" for role, err in errors.items())
        super().__init__(f"Autoscaling reconciliation failed: {detail}")
