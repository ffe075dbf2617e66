"""Clamping of caller-supplied retrieval parameters."""

from dataclasses import dataclass
from typing import Any

DEFAULT_TOP_K = 5
MAX_TOP_K = 20
DEFAULT_THRESHOLD = 0.4


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def clamp_topk(value: Any, default: int = DEFAULT_TOP_K, maximum: int = MAX_TOP_K) -> int:
    """Return ``floor(value)`` when it lies in (0, maximum], else ``default``."""
    if _is_number(value) and 0 < value <= maximum:
        return int(value)
    return default


def clamp_threshold(value: Any, default: float = DEFAULT_THRESHOLD) -> float:
    """Return ``value`` when it lies in [0, 1], else ``default``."""
    if _is_number(value) and 0 <= value <= 1:
        return float(value)
    return default


@dataclass(frozen=True)
class RetrievalParams:
    """Effective retrieval parameters of one run."""

    topk: int
    threshold: float

    @classmethod
    def from_request(
        cls,
        topk: Any,
        threshold: Any,
        *,
        default_topk: int = DEFAULT_TOP_K,
        max_topk: int = MAX_TOP_K,
        default_threshold: float = DEFAULT_THRESHOLD,
    ) -> "RetrievalParams":
        return cls(
            topk=clamp_topk(topk, default_topk, max_topk),
            threshold=clamp_threshold(threshold, default_threshold),
        )
