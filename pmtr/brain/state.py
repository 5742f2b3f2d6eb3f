# pmtr/brain/state.py
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pmtr.brain.rules import active_limit, pick_final_ttl, responder_of
from pmtr.brain.stats import HopStats
from pmtr.schemas import Outcome, ReplyFromIntermediate, Target

logger = logging.getLogger(__name__)


class HopState(Enum):
    UNPROBED = "unprobed"
    ACTIVE = "active"
    INTERMEDIATE = "intermediate"
    CONFIRMED_FINAL = "confirmed-final"


@dataclass
class Hop:
    ttl: int
    address: Optional[str] = None
    hostname: Optional[str] = None
    state: HopState = HopState.UNPROBED
    stats: HopStats = field(default_factory=HopStats)


@dataclass(frozen=True)
class HopSnapshot:
    ttl: int
    address: Optional[str]            # None renders as the unresolved marker
    hostname: Optional[str]
    sent: int
    received: int
    loss_percent: float
    last: Optional[float]
    avg: Optional[float]
    best: Optional[float]
    worst: Optional[float]
    stddev: Optional[float]           # None until two replies are in
    final: bool
    state: HopState


@dataclass(frozen=True)
class PathSnapshot:
    target: Target
    cycle: int
    max_ttl: int
    final_ttl: Optional[int]
    hops: tuple

    @property
    def complete(self) -> bool:
        """False while the target has not answered: the path is unresolved."""
        return self.final_ttl is not None


class PathState:
    """
    Hops 1..max_ttl for one target plus the final TTL once the target has
    answered. Written only by fold(), once per cycle, after every probe of
    that cycle has resolved.
    """

    def __init__(self, target: Target, max_ttl: int, tie_break: str = "lowest"):
        self.target = target
        self.max_ttl = max_ttl
        self.tie_break = tie_break
        self.hops = {ttl: Hop(ttl) for ttl in range(1, max_ttl + 1)}
        self.final_ttl: Optional[int] = None
        self.cycle = 0

    def hop(self, ttl: int) -> Hop:
        return self.hops[ttl]

    def active_ttls(self) -> list[int]:
        return list(range(1, active_limit(self.max_ttl, self.final_ttl) + 1))

    def fold(self, cycle: int, outcomes: dict, completion_order=(), resolver=None) -> Optional[int]:
        """
        Apply one cycle's outcomes (exactly one per active TTL).
        Returns the final TTL if this cycle is the one that discovered it.
        """
        active = set(self.active_ttls())
        if set(outcomes) != active:
            raise ValueError(f"cycle {cycle}: outcomes for {sorted(outcomes)} but active hops are {sorted(active)}")

        for ttl in sorted(outcomes):
            self._apply(self.hops[ttl], outcomes[ttl])
        self.cycle = cycle

        newly_final = None
        if self.final_ttl is None:
            newly_final = pick_final_ttl(outcomes, list(completion_order), self.tie_break)
            if newly_final is not None:
                self.final_ttl = newly_final
                self.hops[newly_final].state = HopState.CONFIRMED_FINAL
                logger.info("target %s reached at ttl %d (cycle %d)", self.target.address, newly_final, cycle)

        if resolver is not None:
            self.fill_hostnames(resolver)
        return newly_final

    def _apply(self, hop: Hop, outcome: Outcome) -> None:
        hop.stats.mark_sent()
        hop.stats.record(outcome)

        addr = responder_of(outcome, self.target.address)
        if addr is not None and addr != hop.address:
            if hop.address is not None:
                logger.debug("ttl %d responder changed %s -> %s", hop.ttl, hop.address, addr)
                hop.hostname = None
            hop.address = addr

        if hop.state == HopState.UNPROBED:
            hop.state = HopState.ACTIVE
        if hop.state == HopState.ACTIVE and isinstance(outcome, ReplyFromIntermediate):
            hop.state = HopState.INTERMEDIATE

    def fill_hostnames(self, resolver) -> None:
        for hop in self.visible_hops():
            if hop.address and hop.hostname is None:
                hop.hostname = resolver.lookup(hop.address)

    def visible_hops(self) -> list[Hop]:
        limit = active_limit(self.max_ttl, self.final_ttl)
        return [self.hops[ttl] for ttl in range(1, limit + 1)
                if self.hops[ttl].state != HopState.UNPROBED]

    def snapshot(self) -> PathSnapshot:
        hops = []
        for hop in self.visible_hops():
            s = hop.stats
            hops.append(HopSnapshot(
                ttl=hop.ttl,
                address=hop.address,
                hostname=hop.hostname,
                sent=s.sent,
                received=s.received,
                loss_percent=s.loss_percent,
                last=s.last,
                avg=s.avg,
                best=s.best,
                worst=s.worst,
                stddev=s.stddev if s.received > 1 else None,
                final=hop.ttl == self.final_ttl,
                state=hop.state,
            ))
        return PathSnapshot(
            target=self.target,
            cycle=self.cycle,
            max_ttl=self.max_ttl,
            final_ttl=self.final_ttl,
            hops=tuple(hops),
        )
