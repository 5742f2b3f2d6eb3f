# pmtr/render.py
from typing import Optional

from rich import box
from rich.console import Console
from rich.live import Live
from rich.table import Table
from rich.text import Text

from pmtr.brain.state import HopSnapshot, PathSnapshot

UNRESOLVED = "???"
NO_DATA = "---"
HOST_WIDTH = 45

HEADER = f"{'':>3} {'Host':<{HOST_WIDTH}} {'Loss%':>6} {'Snt':>5} {'Last':>6} {'Avg':>6} {'Best':>6} {'Wrst':>6} {'StDev':>6}"


def fmt_ms(value: Optional[float]) -> str:
    if value is None:
        return NO_DATA
    return f"{value:.1f}"


def host_label(hop: HopSnapshot, no_dns: bool = False) -> str:
    if hop.address is None:
        return UNRESOLVED
    if hop.hostname and not no_dns:
        return f"{hop.hostname} ({hop.address})"
    return hop.address


def title(snapshot: PathSnapshot) -> str:
    return f"mtr to {snapshot.target.name} ({snapshot.target.address})"


def format_hop(hop: HopSnapshot, no_dns: bool = False) -> str:
    host = host_label(hop, no_dns)[:HOST_WIDTH]
    return (
        f"{hop.ttl:>3}. {host:<{HOST_WIDTH}} {hop.loss_percent:>5.1f}% {hop.sent:>5} "
        f"{fmt_ms(hop.last):>6} {fmt_ms(hop.avg):>6} {fmt_ms(hop.best):>6} "
        f"{fmt_ms(hop.worst):>6} {fmt_ms(hop.stddev):>6}"
    )


def render_text(snapshot: PathSnapshot, no_dns: bool = False) -> str:
    """Plain mtr-style report, one line per hop."""
    lines = [title(snapshot), HEADER]
    lines.extend(format_hop(h, no_dns) for h in snapshot.hops)
    if not snapshot.complete:
        lines.append(f"     target not reached within {snapshot.max_ttl} hops ({UNRESOLVED})")
    return "\n".join(lines)


def snapshot_to_dict(snapshot: PathSnapshot) -> dict:
    return {
        "target": snapshot.target.name,
        "address": snapshot.target.address,
        "cycles": snapshot.cycle,
        "final_ttl": snapshot.final_ttl,
        "complete": snapshot.complete,
        "hops": [
            {
                "ttl": h.ttl,
                "address": h.address,
                "hostname": h.hostname,
                "sent": h.sent,
                "received": h.received,
                "loss_percent": round(h.loss_percent, 3),
                "last_ms": h.last,
                "avg_ms": h.avg,
                "best_ms": h.best,
                "worst_ms": h.worst,
                "stddev_ms": h.stddev,
                "final": h.final,
            }
            for h in snapshot.hops
        ],
    }


def build_table(snapshot: PathSnapshot, no_dns: bool = False) -> Table:
    caption = f"cycle {snapshot.cycle}" if snapshot.cycle else "collecting..."
    if snapshot.cycle and not snapshot.complete:
        caption += f"  target not reached within {snapshot.max_ttl} hops"
    table = Table(title=title(snapshot), caption=caption, box=box.SIMPLE_HEAD, expand=False)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Host", style="magenta", max_width=HOST_WIDTH, no_wrap=True)
    table.add_column("Loss%", justify="right", style="red")
    table.add_column("Snt", justify="right", style="yellow")
    table.add_column("Rcv", justify="right", style="yellow")
    table.add_column("Last", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Best", justify="right", style="green")
    table.add_column("Wrst", justify="right")
    table.add_column("StDev", justify="right")

    for h in snapshot.hops:
        host = Text(host_label(h, no_dns), style="bold" if h.final else "")
        table.add_row(
            str(h.ttl),
            host,
            f"{h.loss_percent:.1f}",
            str(h.sent),
            str(h.received),
            fmt_ms(h.last),
            fmt_ms(h.avg),
            fmt_ms(h.best),
            fmt_ms(h.worst),
            fmt_ms(h.stddev),
        )
    return table


class LiveRenderer:
    """Redraws the table after every cycle; prints it once more at the end."""

    def __init__(self, console: Optional[Console] = None, no_dns: bool = False):
        self.console = console or Console()
        self.no_dns = no_dns
        self._live: Optional[Live] = None

    def __enter__(self):
        self._live = Live(console=self.console, auto_refresh=False, transient=True)
        self._live.start()
        return self

    def __exit__(self, *exc):
        self._stop()

    def _stop(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def update(self, snapshot: PathSnapshot) -> None:
        if self._live is not None:
            self._live.update(build_table(snapshot, self.no_dns), refresh=True)

    def final(self, snapshot: PathSnapshot) -> None:
        self._stop()
        self.console.print(build_table(snapshot, self.no_dns))


class ReportRenderer:
    """Report mode: nothing per cycle, one text (or JSON) report at the end."""

    def __init__(self, console: Optional[Console] = None, no_dns: bool = False, json_output: bool = False):
        self.console = console or Console()
        self.no_dns = no_dns
        self.json_output = json_output

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        pass

    def update(self, snapshot: PathSnapshot) -> None:
        pass

    def final(self, snapshot: PathSnapshot) -> None:
        if self.json_output:
            self.console.print_json(data=snapshot_to_dict(snapshot))
        else:
            self.console.print(render_text(snapshot, self.no_dns), markup=False, highlight=False, soft_wrap=True)
