# pmtr/config.py
from dataclasses import dataclass

from pmtr.errors import ConfigError
from pmtr.prober.scamper import DEFAULT_SCAMPER_BIN

TIE_BREAKS = ("lowest", "earliest")


@dataclass
class Settings:
    count: int = 0                # cycles in continuous mode, 0 = until cancelled
    interval_ms: int = 500
    max_ttl: int = 30
    no_dns: bool = False
    report: bool = False
    report_cycles: int = 10
    timeout_ms: int = 500

    # extra wait on top of timeout_ms before a probe is written off as lost
    probe_grace_ms: int = 250

    # which hop wins when several answer from the target in the same cycle
    tie_break: str = "lowest"

    # scamper transport
    method: str = "icmp-paris"
    scamper_bin: str = DEFAULT_SCAMPER_BIN
    use_sudo: bool = True

    json_output: bool = False

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def grace_s(self) -> float:
        return self.probe_grace_ms / 1000.0

    @property
    def cycle_limit(self) -> int:
        """Number of cycles to run, 0 meaning no limit."""
        return self.report_cycles if self.report else self.count

    def validate(self) -> "Settings":
        if not 1 <= self.max_ttl <= 255:
            raise ConfigError(f"max_ttl must be in 1..255, got {self.max_ttl}")
        if self.count < 0:
            raise ConfigError(f"count must be >= 0, got {self.count}")
        if self.interval_ms < 0:
            raise ConfigError(f"interval must be >= 0 ms, got {self.interval_ms}")
        if self.timeout_ms <= 0:
            raise ConfigError(f"timeout must be > 0 ms, got {self.timeout_ms}")
        if self.probe_grace_ms < 0:
            raise ConfigError(f"probe grace must be >= 0 ms, got {self.probe_grace_ms}")
        if self.report and self.report_cycles < 1:
            raise ConfigError(f"report cycles must be >= 1, got {self.report_cycles}")
        if self.tie_break not in TIE_BREAKS:
            raise ConfigError(f"tie_break must be one of {TIE_BREAKS}, got {self.tie_break!r}")
        return self
