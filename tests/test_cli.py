# tests/test_cli.py
import io
import json

import pytest
from rich.console import Console

from pmtr import cli
from pmtr.errors import ResolveError


def console():
    return Console(file=io.StringIO(), width=200, color_system=None)


def test_fake_report_mode():
    c = console()
    rc = cli.main(["fake", "-r", "-C", "3", "-i", "0"], console=c)
    out = c.file.getvalue()
    assert rc == 0
    assert "mtr to fake (198.51.100.7)" in out
    assert "10.0.0.1" in out
    assert "198.51.100.7" in out.splitlines()[-1]


def test_fake_report_json():
    c = console()
    rc = cli.main(["fake", "-r", "-C", "2", "-i", "0", "--json"], console=c)
    data = json.loads(c.file.getvalue())
    assert rc == 0
    assert data["cycles"] == 2
    assert data["complete"] is True
    assert data["hops"][-1]["final"] is True
    assert all(h["sent"] == 2 for h in data["hops"])


def test_fake_continuous_with_count():
    c = console()
    rc = cli.main(["fake", "-c", "2", "-i", "0", "-m", "4"], console=c)
    assert rc == 0
    assert "mtr to fake" in c.file.getvalue()


def test_resolution_failure_exits_nonzero(monkeypatch):
    def fail(host):
        raise ResolveError(f"Failed to resolve {host}")

    monkeypatch.setattr(cli, "resolve_forward", fail)
    assert cli.main(["nope.invalid", "-r"], console=console()) == 1


def test_missing_transport_exits_nonzero(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "resolve_forward", lambda host: cli.FAKE_TARGET)
    rc = cli.main(["somewhere", "-r", "--scamper-bin", str(tmp_path / "missing")], console=console())
    assert rc == 1


def test_invalid_settings_exit_2():
    assert cli.main(["fake", "-m", "0"], console=console()) == 2
    assert cli.main(["fake", "-t", "0"], console=console()) == 2


def test_bad_arguments_exit_2():
    with pytest.raises(SystemExit) as exc:
        cli.main(["fake", "-c", "lots"])
    assert exc.value.code == 2


def test_defaults():
    args = cli.build_argparser().parse_args(["example.com"])
    s = cli.settings_from_args(args)
    assert (s.count, s.interval_ms, s.max_ttl, s.report_cycles, s.timeout_ms) == (0, 500, 30, 10, 500)
    assert not s.no_dns and not s.report
    assert s.tie_break == "lowest"


def test_tools_wrapper_uses_package_cli():
    from tools import run_mtr
    assert run_mtr.main is cli.main
