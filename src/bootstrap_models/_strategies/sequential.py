"""Sequential execution on the calling thread."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

T = TypeVar("T")


class SequentialStrategy:
    """Run every resample in order on the calling thread.

    The default strategy, and the fallback when another strategy's
    runtime is unavailable.
    """

    name: str = "none"

    def map(self, fn: Callable[[Any], T], items: Sequence[Any]) -> list[T]:
        return [fn(item) for item in items]
