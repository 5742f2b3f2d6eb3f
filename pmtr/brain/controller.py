# pmtr/brain/controller.py
import logging
from enum import Enum
from typing import Optional

from pmtr.brain.cancel import CancelToken
from pmtr.brain.scheduler import CycleScheduler
from pmtr.brain.state import PathSnapshot, PathState
from pmtr.config import Settings
from pmtr.prober.base import Prober
from pmtr.schemas import Target

logger = logging.getLogger(__name__)


class RunState(Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class NullRenderer:
    def update(self, snapshot: PathSnapshot) -> None:
        pass

    def final(self, snapshot: PathSnapshot) -> None:
        pass


class RunController:
    """
    Drives cycles until cancelled or the cycle limit is hit.

    Continuous mode hands a snapshot to renderer.update() after every cycle;
    report mode stays quiet. Both end with exactly one renderer.final().
    """

    def __init__(self, prober: Prober, settings: Settings, renderer=None,
                 resolver=None, cancel: Optional[CancelToken] = None):
        self.prober = prober
        self.s = settings
        self.renderer = renderer or NullRenderer()
        self.resolver = resolver
        self.cancel = cancel or CancelToken()
        self.state = RunState.INITIALIZING
        self.path: Optional[PathState] = None
        self.last_report = None

    def run(self, target: Target) -> PathSnapshot:
        self.path = PathState(target, self.s.max_ttl, tie_break=self.s.tie_break)
        limit = self.s.cycle_limit
        mode = "report" if self.s.report else "continuous"
        logger.info("%s mode to %s, max ttl %d, %s cycles", mode, target, self.s.max_ttl,
                    limit or "unlimited")

        self.state = RunState.RUNNING
        with CycleScheduler(self.s.max_ttl, grace=self.s.grace_s, resolver=self.resolver) as sched:
            while True:
                # -------------------------------
                # 1) One full cycle
                # -------------------------------
                report = sched.run_cycle(self.path, self.prober, self.s.timeout_s, self.cancel)
                if report.skipped:
                    self.state = RunState.CANCELLED
                    break
                self.last_report = report

                if not self.s.report:
                    self.renderer.update(self.path.snapshot())

                # -------------------------------
                # 2) Stop or wait for the next one
                # -------------------------------
                if limit and report.cycle >= limit:
                    self.state = RunState.COMPLETED
                    break
                if self.cancel.cancelled or self.cancel.wait(self.s.interval_s):
                    self.state = RunState.CANCELLED
                    break

        if self.state == RunState.CANCELLED:
            logger.info("cancelled after %d cycles", self.path.cycle)
        else:
            logger.info("completed %d cycles", self.path.cycle)

        if self.resolver is not None:
            self.path.fill_hostnames(self.resolver)
        snap = self.path.snapshot()
        self.renderer.final(snap)
        return snap
