"""Advisory progress counter shared between a deletion worker and the UI."""

from typing import Callable, Union


class ProgressCounter:
    """
    Tally of files removed during one deletion run.

    Exactly one worker writes at a time, any number of readers poll it
    without locking. Each write stores an absolute value, so a reader may
    see a stale number but never a torn one. Never used for correctness
    decisions, only for live display.
    """

    __slots__ = ("_value",)

    def __init__(self, value: int = 0):
        self._value = value

    @property
    def value(self) -> int:
        """Last published count."""
        return self._value

    def publish(self, value: int) -> None:
        """Store a new absolute count."""
        self._value = value

    def reset(self) -> None:
        """Zero the counter before a new run."""
        self._value = 0

    def __call__(self, value: int) -> None:
        self.publish(value)

    def __repr__(self) -> str:
        return f"ProgressCounter({self._value})"


# Either a counter or a bare callback taking the absolute count
ProgressSink = Union[ProgressCounter, Callable[[int], None]]
