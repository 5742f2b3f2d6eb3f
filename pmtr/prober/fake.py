# pmtr/prober/fake.py
import threading
import time
from collections import deque

from pmtr.prober.base import Prober
from pmtr.schemas import TIMEOUT, Outcome, ReplyFromIntermediate, ReplyFromTarget


class FakeProber(Prober):
    """
    script: dict[ttl] -> either a list of outcomes (returned one per call, then
    `default`) or a single outcome returned on every call.
    delays: dict[ttl] -> seconds to sleep before answering.
    If nothing is scripted for a TTL, returns `default` (a timeout).
    """

    def __init__(self, script=None, delays=None, default: Outcome = TIMEOUT):
        self.script = {}
        self.fixed = {}
        for ttl, v in (script or {}).items():
            if isinstance(v, (list, tuple)):
                self.script[ttl] = deque(v)
            else:
                self.fixed[ttl] = v
        self.delays = dict(delays or {})
        self.default = default
        self.calls = []  # (ttl, sequence_id) in call order
        self._lock = threading.Lock()

    @classmethod
    def linear_path(cls, hops: int, base_rtt: float = 1.0, step: float = 2.5, delays=None):
        """A clean path: routers 10.0.0.1..N-1 answer, the target answers at TTL `hops`."""
        script = {
            ttl: ReplyFromIntermediate(f"10.0.0.{ttl}", base_rtt + step * (ttl - 1))
            for ttl in range(1, hops)
        }
        script[hops] = ReplyFromTarget(base_rtt + step * (hops - 1))
        return cls(script=script, delays=delays)

    def probed_ttls(self) -> list[int]:
        with self._lock:
            return [ttl for ttl, _ in self.calls]

    def send_probe(self, target_addr: str, ttl: int, sequence_id: int, timeout: float) -> Outcome:
        with self._lock:
            self.calls.append((ttl, sequence_id))
            dq = self.script.get(ttl)
            if dq:
                outcome = dq.popleft()
            else:
                outcome = self.fixed.get(ttl, self.default)

        delay = self.delays.get(ttl, 0.0)
        if delay:
            time.sleep(delay)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
