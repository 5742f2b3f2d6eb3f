# pmtr/brain/scheduler.py
import concurrent.futures
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from pmtr.brain.cancel import CancelToken
from pmtr.brain.rules import describe, is_loss
from pmtr.brain.state import PathState
from pmtr.prober.base import Prober
from pmtr.schemas import TIMEOUT, Outcome, TransportError

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    cycle: int
    outcomes: dict = field(default_factory=dict)            # ttl -> Outcome
    completion_order: list = field(default_factory=list)    # ttls, first finished first
    final_ttl: Optional[int] = None                         # set only on the discovering cycle
    elapsed: float = 0.0
    skipped: bool = False

    @property
    def losses(self) -> int:
        return sum(1 for o in self.outcomes.values() if is_loss(o))


class CycleScheduler:
    """
    Runs one probing cycle at a time: every active hop gets one probe, all
    in flight at once, joined before anything is folded into the path state.

    Each cycle gets its own executor sized to the active hops, so a probe
    that overran an earlier cycle's deadline never holds up a later one.
    Overrunning probes are kept in `stragglers` until they exit.
    """

    def __init__(self, max_ttl: int, grace: float = 0.25, resolver=None):
        self.max_ttl = max_ttl
        self.grace = grace
        self.resolver = resolver
        self.cycle = 0
        self.stragglers: set = set()
        self._seq = itertools.count(1)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        # overrunning probes are left to finish on their own
        self._prune_stragglers()
        if self.stragglers:
            logger.debug("%d overrunning probes still running at close", len(self.stragglers))

    def _next_seq(self) -> int:
        return next(self._seq) & 0xFFFF

    def _prune_stragglers(self) -> None:
        self.stragglers = {f for f in self.stragglers if not f.done()}

    def run_cycle(self, path: PathState, transport: Prober, timeout: float,
                  cancellation: Optional[CancelToken] = None) -> CycleReport:
        if cancellation is not None and cancellation.cancelled:
            return CycleReport(cycle=self.cycle, skipped=True)

        self.cycle += 1
        report = CycleReport(cycle=self.cycle)
        ttls = path.active_ttls()
        order_lock = threading.Lock()
        closed = False
        started = time.monotonic()

        self._prune_stragglers()
        if self.stragglers:
            logger.debug("cycle %d: %d probes from earlier cycles still running", self.cycle, len(self.stragglers))

        def probe(ttl: int, seq: int) -> Outcome:
            try:
                outcome = transport.send_probe(path.target.address, ttl, seq, timeout)
            except Exception as e:
                logger.warning("probe ttl=%d seq=%d raised %s: %s", ttl, seq, type(e).__name__, e)
                outcome = TransportError(f"{type(e).__name__}: {e}")
            with order_lock:
                if not closed:
                    report.completion_order.append(ttl)
            return outcome

        # -------------------------------
        # 1) Fan out: one probe per hop
        # -------------------------------
        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(ttls), thread_name_prefix=f"probe-c{self.cycle}")
        try:
            futures = {
                pool.submit(probe, ttl, self._next_seq()): ttl
                for ttl in ttls
            }
            logger.debug("cycle %d: %d probes in flight", self.cycle, len(futures))

            # -------------------------------
            # 2) Fan in, bounded by timeout
            # -------------------------------
            deadline = timeout + self.grace
            done, not_done = concurrent.futures.wait(futures, timeout=deadline)
        finally:
            pool.shutdown(wait=False)

        with order_lock:
            closed = True
            order = list(report.completion_order)

        if cancellation is not None and cancellation.cancelled:
            logger.debug("cycle %d: cancelled with probes in flight, all resolved before fold", self.cycle)

        for fut in done:
            report.outcomes[futures[fut]] = fut.result()
        for fut in not_done:
            ttl = futures[fut]
            self.stragglers.add(fut)
            logger.debug("cycle %d: ttl %d overran %.3fs, counted as timeout", self.cycle, ttl, deadline)
            report.outcomes[ttl] = TIMEOUT

        for ttl in sorted(report.outcomes):
            o = report.outcomes[ttl]
            if isinstance(o, TransportError):
                logger.debug("cycle %d ttl %d: %s", self.cycle, ttl, describe(o))

        # -------------------------------
        # 3) Fold into the path state
        # -------------------------------
        report.final_ttl = path.fold(self.cycle, report.outcomes, order, resolver=self.resolver)
        report.elapsed = time.monotonic() - started
        logger.debug("cycle %d done in %.3fs, %d/%d lost",
                     self.cycle, report.elapsed, report.losses, len(report.outcomes))
        return report
