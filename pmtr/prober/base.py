# pmtr/prober/base.py
from abc import ABC, abstractmethod

from pmtr.schemas import Outcome


class Prober(ABC):
    """
    One ICMP Echo round trip at a given TTL.

    send_probe() is called from several worker threads at once, one per hop,
    so implementations must not keep per-call state on self without locking.
    """

    @abstractmethod
    def send_probe(self, target_addr: str, ttl: int, sequence_id: int, timeout: float) -> Outcome:
        """Send one echo to target_addr with the given TTL and wait at most timeout seconds."""
        raise NotImplementedError

    def close(self) -> None:
        pass
