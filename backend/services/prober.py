"""
Reachability prober.

Runs the system ``ping`` binary once per address and turns its output into a
ProbeResult.  The prober is stateless: one call, one address, one result.
"""

import asyncio
import contextlib
import logging
import math
import shutil
import sys
from typing import Optional

from config import settings
from parsers.base import PingStatistics
from parsers.ping import PingParser
from schemas import ProbeResult

logger = logging.getLogger(__name__)

UNKNOWN_LATENCY = "unknown"
NO_VALUE = "-"

# Extra time granted to the subprocess on top of ping's own deadline
_PROCESS_GRACE_SECONDS = 1.0


class ProbeError(Exception):
    """Raised when the ping command could not be run to completion."""


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _rounded_string(raw: Optional[str]) -> str:
    """Render a provider value as an integer string, or '-' when absent/unparseable."""
    if raw is None:
        return NO_VALUE
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return NO_VALUE
    if math.isnan(value) or math.isinf(value):
        return NO_VALUE
    return str(_round_half_up(value))


def normalize_statistics(address: str, stats: PingStatistics) -> ProbeResult:
    """
    Convert parsed ping statistics into a ProbeResult.

    - ``time`` is the first reply's latency, or ``"unknown"`` (never zero)
    - ``avg`` and ``packetLoss`` are rounded half-up and rendered as strings,
      ``"-"`` when ping printed nothing usable
    - ``min``/``max`` are passed through as printed, ``"unknown"`` when absent
    """
    alive = stats.alive
    first_reply = stats.first_reply_ms if alive else None
    return ProbeResult(
        ip=address,
        alive=alive,
        time=first_reply if first_reply is not None else UNKNOWN_LATENCY,
        min=stats.min_ms or UNKNOWN_LATENCY,
        max=stats.max_ms or UNKNOWN_LATENCY,
        avg=_rounded_string(stats.avg_ms),
        packet_loss=_rounded_string(stats.packet_loss),
    )


class Prober:
    """Probe one host with the platform's ``ping`` command."""

    def __init__(
        self,
        count: int = settings.PING_COUNT,
        timeout_seconds: float = settings.PING_TIMEOUT_SECONDS,
        ping_binary: str = "ping",
        platform: str = sys.platform,
    ):
        self.count = count
        self.timeout_seconds = timeout_seconds
        self.ping_binary = ping_binary
        self.platform = platform
        self.parser = PingParser()

    def build_command(self, address: str) -> list[str]:
        """Build the ping argument list for the current platform."""
        count = str(self.count)
        if self.platform.startswith("win"):
            # Windows: -n count, -w timeout(ms)
            timeout_ms = str(int(self.timeout_seconds * 1000))
            return [self.ping_binary, "-n", count, "-w", timeout_ms, address]
        if self.platform == "darwin":
            # macOS: -c count, -W timeout(ms)
            timeout_ms = str(int(self.timeout_seconds * 1000))
            return [self.ping_binary, "-c", count, "-W", timeout_ms, address]
        # Linux: -c count, -W timeout(s)
        timeout_s = str(max(1, int(round(self.timeout_seconds))))
        return [self.ping_binary, "-c", count, "-W", timeout_s, address]

    @property
    def deadline_seconds(self) -> float:
        return self.count * self.timeout_seconds + _PROCESS_GRACE_SECONDS

    async def _run_ping(self, address: str) -> str:
        """Run ping and return its stdout.  Ping's exit status is not an error."""
        if shutil.which(self.ping_binary) is None:
            raise ProbeError(f"'{self.ping_binary}' binary not found on PATH")

        proc = await asyncio.create_subprocess_exec(
            *self.build_command(address),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.deadline_seconds)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise ProbeError(f"ping {address} timed out after {self.deadline_seconds:.1f}s")
        return stdout.decode(errors="replace")

    async def probe(self, address: str) -> ProbeResult:
        """
        Probe ``address`` once.

        Any failure to run ping is reported as an unreachable host with no
        latency fields rather than raised.
        """
        try:
            output = await self._run_ping(address)
        except (ProbeError, OSError) as e:
            logger.warning(f"Ping error for {address}: {e}")
            return ProbeResult(ip=address, alive=False)

        stats = self.parser.parse_statistics(output)
        return normalize_statistics(address, stats)


def get_prober() -> Prober:
    """FastAPI dependency returning the configured prober."""
    return Prober()
