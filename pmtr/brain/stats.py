# pmtr/brain/stats.py
import math
from dataclasses import dataclass
from typing import Optional

from pmtr.schemas import (
    Outcome,
    ReplyFromIntermediate,
    ReplyFromTarget,
    Timeout,
    TransportError,
)


@dataclass
class HopStats:
    """
    Running per-hop statistics. Every update is O(1): mean and the sum of
    squared deviations (m2) follow Welford's one-pass recurrence, so nothing
    depends on keeping the RTT history around.
    """
    sent: int = 0
    received: int = 0
    last: Optional[float] = None      # None = no data (last probe was lost)
    mean: float = 0.0
    m2: float = 0.0
    best: Optional[float] = None
    worst: Optional[float] = None

    def mark_sent(self) -> None:
        self.sent += 1

    def record(self, outcome: Outcome) -> None:
        if isinstance(outcome, (ReplyFromTarget, ReplyFromIntermediate)):
            self._record_rtt(outcome.rtt_ms)
        elif isinstance(outcome, (Timeout, TransportError)):
            self.last = None
        else:
            raise TypeError(f"unknown outcome {outcome!r}")

    def _record_rtt(self, rtt: float) -> None:
        if self.received >= self.sent:
            raise ValueError("reply recorded without a matching sent probe")
        self.received += 1
        self.last = rtt
        self.best = rtt if self.best is None else min(self.best, rtt)
        self.worst = rtt if self.worst is None else max(self.worst, rtt)

        delta = rtt - self.mean
        self.mean += delta / self.received
        self.m2 += delta * (rtt - self.mean)

    @property
    def loss_percent(self) -> float:
        if self.received == 0:
            return 100.0 if self.sent > 0 else 0.0
        return (self.sent - self.received) / self.sent * 100.0

    @property
    def avg(self) -> Optional[float]:
        return self.mean if self.received else None

    @property
    def variance(self) -> float:
        # population variance, like mtr's sum-of-squares formula
        if self.received == 0:
            return 0.0
        return self.m2 / self.received

    @property
    def stddev(self) -> float:
        return math.sqrt(max(self.variance, 0.0))
