"""Scaling decision produced by the decision engine for one role group."""

from dataclasses import dataclass
from enum import Enum


class ScalingAction(str, Enum):
    SCALE_UP = "scale_up"
    SCALE_DOWN = "scale_down"
    NO_ACTION = "no_action"


@dataclass(frozen=True)
class ScalingDecision:
    """target_replicas is only meaningful when action != NO_ACTION; reason is then non-empty."""

    action: ScalingAction
    target_replicas: int = 0
    reason: str = ""
    confidence: float = 0.0

    def __post_init__(self) -> None:
        if self.action != ScalingAction.NO_ACTION and not self.reason:
            raise ValueError("a scaling decision must carry a reason")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")

    @classmethod
    def no_action(cls, reason: str = "") -> "ScalingDecision":
        return cls(action=ScalingAction.NO_ACTION, reason=reason)
