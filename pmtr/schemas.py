# pmtr/schemas.py
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class Target:
    """The probe destination, resolved once before the first cycle."""
    address: str
    name: str

    def __str__(self) -> str:
        if self.name == self.address:
            return self.address
        return f"{self.name} ({self.address})"


@dataclass(frozen=True)
class ReplyFromTarget:
    rtt_ms: float

    def __post_init__(self):
        if self.rtt_ms < 0:
            raise ValueError(f"negative rtt: {self.rtt_ms}")


@dataclass(frozen=True)
class ReplyFromIntermediate:
    responder: str
    rtt_ms: float

    def __post_init__(self):
        if self.rtt_ms < 0:
            raise ValueError(f"negative rtt: {self.rtt_ms}")


@dataclass(frozen=True)
class Timeout:
    pass


@dataclass(frozen=True)
class TransportError:
    reason: str
    # set when a router answered with something other than time-exceeded
    # (e.g. host/net unreachable)
    responder: Optional[str] = None


Outcome = Union[ReplyFromTarget, ReplyFromIntermediate, Timeout, TransportError]

TIMEOUT = Timeout()
