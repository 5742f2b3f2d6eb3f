# pmtr/cli.py
# Usage examples:
#   pmtr 8.8.8.8
#   pmtr example.com -r -C 20 --json
#   pmtr 1.1.1.1 -c 50 -i 1000 -t 800 -n
#   pmtr fake

import argparse
import logging
import signal
import sys

from rich.console import Console

from pmtr.brain.cancel import CancelToken
from pmtr.brain.controller import RunController
from pmtr.config import TIE_BREAKS, Settings
from pmtr.errors import ConfigError, MtrError
from pmtr.logs import setup_logging
from pmtr.render import LiveRenderer, ReportRenderer
from pmtr.resolver import ReverseResolver, resolve_forward
from pmtr.schemas import Target

logger = logging.getLogger("pmtr.cli")

FAKE_TARGET = Target(address="198.51.100.7", name="fake")


def build_argparser():
    ap = argparse.ArgumentParser(prog="pmtr", description="traceroute and ping combined, every hop probed in parallel")
    ap.add_argument("target", help="Destination host/IP (or 'fake' for a scripted demo path)")
    ap.add_argument("-c", "--count", type=int, default=0, help="Pings per hop, 0 = until interrupted")
    ap.add_argument("-i", "--interval", type=int, default=500, help="Interval between cycles (milliseconds)")
    ap.add_argument("-m", "--max-ttl", type=int, default=30, help="Maximum number of hops")
    ap.add_argument("-n", "--no-dns", action="store_true", help="Do not resolve hop hostnames")
    ap.add_argument("-r", "--report", action="store_true", help="Report mode: run quietly, print one report")
    ap.add_argument("-C", "--report-cycles", type=int, default=10, help="Cycles to run in report mode")
    ap.add_argument("-t", "--timeout", type=int, default=500, help="Per-probe timeout (milliseconds)")
    ap.add_argument("--tie-break", default="lowest", choices=TIE_BREAKS,
                    help="Which hop is final when several answer from the target in one cycle")
    ap.add_argument("--scamper-bin", default=None, help="Path to the scamper binary")
    ap.add_argument("--no-sudo", dest="use_sudo", action="store_false", help="Do not fall back to sudo -n for scamper")
    ap.add_argument("--json", dest="json_output", action="store_true", help="Report mode: print JSON")
    ap.add_argument("-v", "--verbose", action="store_true", help="Info logging to stderr")
    ap.add_argument("--debug", action="store_true", help="Debug logging to stderr")
    ap.add_argument("--log", default=None, help="Write a debug log to this file")
    return ap


def settings_from_args(args) -> Settings:
    s = Settings(
        count=args.count,
        interval_ms=args.interval,
        max_ttl=args.max_ttl,
        no_dns=args.no_dns,
        report=args.report,
        report_cycles=args.report_cycles,
        timeout_ms=args.timeout,
        tie_break=args.tie_break,
        use_sudo=args.use_sudo,
        json_output=args.json_output,
    )
    if args.scamper_bin:
        s.scamper_bin = args.scamper_bin
    return s.validate()


def build_prober(args, s: Settings):
    if args.target == "fake":
        from pmtr.prober.fake import FakeProber
        return FakeProber.linear_path(min(6, s.max_ttl), delays={1: 0.01, 2: 0.02})
    from pmtr.prober.scamper import ScamperProber
    return ScamperProber(scamper_bin=s.scamper_bin, method=s.method, use_sudo=s.use_sudo)


def run(args, console: Console) -> int:
    s = settings_from_args(args)
    target = FAKE_TARGET if args.target == "fake" else resolve_forward(args.target)
    prober = build_prober(args, s)

    resolver = ReverseResolver(enabled=not s.no_dns and args.target != "fake")
    cancel = CancelToken()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.cancel())
    try:
        if s.report:
            renderer = ReportRenderer(console, no_dns=s.no_dns, json_output=s.json_output)
        else:
            renderer = LiveRenderer(console, no_dns=s.no_dns)
        with renderer:
            ctrl = RunController(prober, s, renderer=renderer, resolver=resolver, cancel=cancel)
            ctrl.run(target)
    finally:
        signal.signal(signal.SIGINT, previous)
        resolver.close()
        prober.close()
    return 0


def main(argv=None, console: Console = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    setup_logging(log_file=args.log, debug=args.debug, verbose=args.verbose)
    console = console or Console()

    try:
        return run(args, console)
    except ConfigError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except MtrError as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
