# pmtr/brain/rules.py
from typing import Optional

from pmtr.schemas import (
    Outcome,
    ReplyFromIntermediate,
    ReplyFromTarget,
    Timeout,
    TransportError,
)


def active_limit(max_ttl: int, final_ttl: Optional[int]) -> int:
    """Highest TTL that is still probed: max_ttl until the target has answered."""
    if final_ttl is None:
        return max_ttl
    return min(max_ttl, final_ttl)


def is_loss(outcome: Outcome) -> bool:
    if isinstance(outcome, (ReplyFromTarget, ReplyFromIntermediate)):
        return False
    if isinstance(outcome, (Timeout, TransportError)):
        return True
    raise TypeError(f"unknown outcome {outcome!r}")


def responder_of(outcome: Outcome, target_addr: str) -> Optional[str]:
    """Address that answered the probe, if any. Unreachable replies still name a router."""
    if isinstance(outcome, ReplyFromTarget):
        return target_addr
    if isinstance(outcome, ReplyFromIntermediate):
        return outcome.responder
    if isinstance(outcome, TransportError):
        return outcome.responder
    if isinstance(outcome, Timeout):
        return None
    raise TypeError(f"unknown outcome {outcome!r}")


def pick_final_ttl(outcomes: dict, completion_order: list, tie_break: str = "lowest") -> Optional[int]:
    """
    Choose the final hop among the TTLs that got a reply from the target.
    - lowest: the smallest such TTL
    - earliest: the one whose probe completed first
    """
    reached = [ttl for ttl, o in outcomes.items() if isinstance(o, ReplyFromTarget)]
    if not reached:
        return None
    if tie_break == "earliest":
        for ttl in completion_order:
            if ttl in reached:
                return ttl
    return min(reached)


def describe(outcome: Outcome) -> str:
    if isinstance(outcome, ReplyFromTarget):
        return f"target {outcome.rtt_ms:.1f}ms"
    if isinstance(outcome, ReplyFromIntermediate):
        return f"{outcome.responder} {outcome.rtt_ms:.1f}ms"
    if isinstance(outcome, TransportError):
        via = f" from {outcome.responder}" if outcome.responder else ""
        return f"error ({outcome.reason}){via}"
    return "timeout"
