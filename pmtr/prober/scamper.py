# pmtr/prober/scamper.py
import json
import logging
import math
import os
import shlex
import shutil
import subprocess
import time

from pmtr.errors import TransportInitError
from pmtr.prober.base import Prober
from pmtr.schemas import (
    TIMEOUT,
    Outcome,
    ReplyFromIntermediate,
    ReplyFromTarget,
    TransportError,
)

logger = logging.getLogger(__name__)

DEFAULT_SCAMPER_BIN = shutil.which("scamper") or "/usr/bin/scamper"

ICMP_ECHO_REPLY = 0
ICMP_UNREACH = 3
ICMP_TIME_EXCEEDED = 11


class ScamperProber(Prober):
    """
    Wrapper around the 'scamper' binary that sends a single-TTL ICMP echo
    (icmp-paris trace with first == max TTL) and classifies the reply.
    Tries without sudo first and falls back to sudo -n.
    """

    def __init__(self,
                 scamper_bin: str = DEFAULT_SCAMPER_BIN,
                 method: str = "icmp-paris",
                 use_sudo: bool = True):
        self.scamper = scamper_bin
        self.method = method
        self.use_sudo = use_sudo
        if not os.path.exists(self.scamper):
            raise TransportInitError(f"scamper binary not found at {self.scamper}")

    def _build_cmd(self, dest: str, ttl: int, wait_s: int, use_sudo: bool = False) -> str:
        # the trace template is applied to the -i target list
        trace_tpl = f"trace -P {self.method} -q 1 -f {ttl} -m {ttl} -w {wait_s}"
        base = f"{shlex.quote(self.scamper)} -O json -i {shlex.quote(dest)} -c {shlex.quote(trace_tpl)}"
        if use_sudo:
            # -n avoids a password prompt; needs a NOPASSWD rule for scamper
            return f"sudo -n {base}"
        return base

    def _run_cmd(self, cmd: str, timeout: float) -> str:
        # no shell in between, so the timeout kill reaches scamper (or sudo) itself
        proc = subprocess.run(shlex.split(cmd), check=False, stdout=subprocess.PIPE,
                              stderr=subprocess.STDOUT, text=True, timeout=timeout)
        return proc.stdout

    def send_probe(self, target_addr: str, ttl: int, sequence_id: int, timeout: float) -> Outcome:
        # scamper only waits in whole seconds; the subprocess timeout enforces the real
        # deadline, shared by the plain and the sudo attempt
        wait_s = max(1, math.ceil(timeout))
        deadline = time.monotonic() + timeout
        tries = [False]
        if self.use_sudo:
            tries.append(True)

        last_out = ""
        for use_sudo in tries:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return TIMEOUT
            cmd = self._build_cmd(target_addr, ttl, wait_s, use_sudo=use_sudo)
            try:
                out = self._run_cmd(cmd, timeout=remaining)
            except subprocess.TimeoutExpired:
                logger.debug("scamper ttl=%d seq=%d did not exit in time", ttl, sequence_id)
                return TIMEOUT
            except OSError as e:
                return TransportError(f"exec failed: {e}")
            last_out = out

            lowered = out.lower()
            if "could not chown /var/empty" in lowered:
                return TransportError("privsep: check /var/empty permissions")
            if out.strip().startswith("usage: scamper"):
                return TransportError("scamper usage")

            outcome = parse_trace_output(out, target_addr, ttl, timeout)
            if outcome is not None:
                return outcome
            # no trace record: retry with sudo if allowed

        logger.debug("scamper ttl=%d gave no trace record: %s", ttl, last_out[:200])
        return TransportError("no trace record in scamper output")


def parse_trace_output(out: str, dest: str, ttl: int, timeout: float):
    """
    Turn scamper JSON output into an Outcome.
    Returns None when no trace record was found at all.
    """
    for line in out.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue

        if obj.get("type") != "trace":
            continue

        dst = obj.get("dst") or dest
        for hop in obj.get("hops", []) or []:
            if hop.get("probe_ttl") != ttl:
                continue
            return classify_reply(hop, dst, timeout)

        # trace record present but nothing came back at this TTL
        return TIMEOUT

    return None


def classify_reply(hop: dict, dst: str, timeout: float) -> Outcome:
    ip = hop.get("addr")
    rtt = hop.get("rtt")
    itype = hop.get("icmp_type")

    if rtt is None or ip is None:
        return TIMEOUT
    rtt = max(0.0, float(rtt))
    if rtt > timeout * 1000.0:
        # scamper only waits in whole seconds
        return TIMEOUT

    if itype == ICMP_UNREACH:
        # even from the target itself (admin-prohibited etc.) this is a lost probe
        return TransportError("unreachable", responder=ip)
    if itype == ICMP_ECHO_REPLY or ip == dst:
        return ReplyFromTarget(rtt)
    if itype == ICMP_TIME_EXCEEDED:
        return ReplyFromIntermediate(ip, rtt)
    return TransportError(f"unexpected icmp type {itype}", responder=ip)
