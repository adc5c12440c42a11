"""
Acceptance recency, used by the ranker as a tiebreak.
"""

import time
from collections import OrderedDict
from typing import Callable, Optional

NEVER_ACCEPTED = -1.0


class AcceptanceRecord:
    """
    Label -> timestamp of the last acceptance, scoped to one editing session.

    Optionally bounded: when `max_entries` is set the least recently accepted
    label is evicted first.
    """

    def __init__(
        self,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self._clock = clock
        self._accepted: "OrderedDict[str, float]" = OrderedDict()

    def record(self, label: str, timestamp: Optional[float] = None) -> float:
        """Record an acceptance of `label` and return the stored timestamp."""
        ts = self._clock() if timestamp is None else timestamp
        self._accepted[label] = ts
        self._accepted.move_to_end(label)
        if self.max_entries is not None:
            while len(self._accepted) > self.max_entries:
                self._accepted.popitem(last=False)
        return ts

    def last_accepted(self, label: str) -> float:
        """Timestamp of the last acceptance, NEVER_ACCEPTED if none."""
        return self._accepted.get(label, NEVER_ACCEPTED)

    def __contains__(self, label: str) -> bool:
        return label in self._accepted

    def __len__(self) -> int:
        return len(self._accepted)

    def clear(self) -> None:
        self._accepted.clear()
