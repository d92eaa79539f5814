import time
from typing import Callable, Optional

from .pf_types import Deadline


def position_duration_ms(quarter_length: Optional[float], tempo_bpm: float) -> float:
    """Wall-clock budget for a position: quarter notes * ms per beat.

    Missing or non-positive lengths count as one quarter note.
    """
    if tempo_bpm <= 0:
        raise ValueError(f"tempo_bpm must be > 0, got {tempo_bpm}")
    if not quarter_length or quarter_length <= 0:
        quarter_length = 1.0
    return quarter_length * (60_000.0 / tempo_bpm)


class TimingScheduler:
    """Owns at most one live deadline.

    The clock is any zero-argument callable returning seconds; tests pass a
    fake one, the app uses time.monotonic.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.deadline: Optional[Deadline] = None

    def schedule(self, duration_ms: float, for_position: int) -> Deadline:
        # replaces whatever was live
        self.deadline = Deadline(due_at=self.clock() + duration_ms / 1000.0, for_position=for_position)
        return self.deadline

    def cancel(self):
        self.deadline = None

    @property
    def active(self) -> bool:
        return self.deadline is not None

    def remaining_ms(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, (self.deadline.due_at - self.clock()) * 1000.0)

    def pop_expired(self) -> Optional[Deadline]:
        """Return and clear the deadline if it is due, else None."""
        if self.deadline is None or self.clock() < self.deadline.due_at:
            return None
        expired, self.deadline = self.deadline, None
        return expired
