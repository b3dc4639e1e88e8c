"""
Sweep orchestration.

Handles:
- Parsing an ``ipRange`` value into the list of addresses to probe
- Fanning out one probe per address and waiting for all of them to settle
- Generation tokens so a superseded sweep's results are never applied
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from schemas import ProbeResult
from utils.logging_utils import LogTimer

logger = logging.getLogger(__name__)

SINGLE_HOST_MARKER = "num"
HOSTS_PER_PREFIX = 254


class InvalidTargetError(ValueError):
    """Raised when an ipRange value is neither a prefix nor a marked single host."""


class SupportsProbe(Protocol):
    async def probe(self, address: str) -> ProbeResult:
        """Check one address.  A raised error marks only that address dead."""
        ...


@dataclass(frozen=True)
class SweepTarget:
    """The addresses one sweep covers, in probe order."""

    raw: str
    addresses: List[str] = field(default_factory=list)

    @property
    def single_host(self) -> bool:
        return self.raw.startswith(SINGLE_HOST_MARKER)


def _parse_octets(value: str, expected: int) -> Optional[List[int]]:
    parts = value.split(".")
    if len(parts) != expected:
        return None
    octets = []
    for part in parts:
        if not part.isdigit() or len(part) > 3:
            return None
        num = int(part)
        if num > 255:
            return None
        octets.append(num)
    return octets


def parse_target(ip_range: Optional[str]) -> SweepTarget:
    """
    Parse an ``ipRange`` query value.

    ``"num10.0.0.5"`` is the single host 10.0.0.5; ``"10.0.0"`` is the
    254 hosts 10.0.0.1 through 10.0.0.254.
    """
    if not ip_range or not ip_range.strip():
        raise InvalidTargetError("ipRange is required")

    value = ip_range.strip()
    if value.startswith(SINGLE_HOST_MARKER):
        address = value[len(SINGLE_HOST_MARKER):]
        octets = _parse_octets(address, 4)
        if octets is None:
            raise InvalidTargetError(
                f"Invalid single-host target '{value}'. "
                f"Expected '{SINGLE_HOST_MARKER}' followed by one IPv4 address"
            )
        return SweepTarget(raw=value, addresses=[".".join(str(o) for o in octets)])

    octets = _parse_octets(value, 3)
    if octets is None:
        raise InvalidTargetError(
            f"Invalid ipRange '{value}'. "
            "Expected the first three octets of a /24 (e.g. 192.168.1)"
        )
    prefix = ".".join(str(o) for o in octets)
    return SweepTarget(
        raw=value,
        addresses=[f"{prefix}.{host}" for host in range(1, HOSTS_PER_PREFIX + 1)],
    )


async def sweep(target: SweepTarget, prober: SupportsProbe) -> List[ProbeResult]:
    """
    Probe every address of ``target`` concurrently.

    All probes start at once and the call returns only when every one has
    settled.  Results are in address order, not completion order.  A probe
    that raises becomes an unreachable result for that address only.
    """
    with LogTimer(logger, f"Sweep {target.raw}") as timer:
        outcomes = await asyncio.gather(
            *(prober.probe(address) for address in target.addresses),
            return_exceptions=True,
        )

        results: List[ProbeResult] = []
        for address, outcome in zip(target.addresses, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Probe failed for {address}: {outcome!r}")
                results.append(ProbeResult(ip=address, alive=False))
            else:
                results.append(outcome)

        timer.set_record_count(len(results))
    return results


# ── Generation tokens ─────────────────────────────────────────────────

@dataclass(frozen=True)
class SweepToken:
    """Identifies one sweep invocation."""

    generation: int
    target: str


class SweepCoordinator:
    """
    Tracks which sweep is current for one view.

    ``begin`` hands out a new token and cancels whatever task was attached
    to the previous one.  Results are applied only while their token is
    still current.
    """

    def __init__(self):
        self._generation = 0
        self._current: Optional[SweepToken] = None
        self._task: Optional[asyncio.Future] = None

    @property
    def current(self) -> Optional[SweepToken]:
        return self._current

    def begin(self, target: str) -> SweepToken:
        self._generation += 1
        token = SweepToken(generation=self._generation, target=target)
        previous = self._current
        self._current = token
        if self._task is not None and not self._task.done():
            logger.debug(
                f"Cancelling sweep of {previous.target if previous else '?'}",
                extra={'generation': previous.generation if previous else None},
            )
            self._task.cancel()
        self._task = None
        return token

    def attach(self, token: SweepToken, task: asyncio.Future) -> None:
        """Associate the in-flight task with ``token`` so a newer sweep can cancel it."""
        if self.is_current(token):
            self._task = task
        else:
            task.cancel()

    def is_current(self, token: SweepToken) -> bool:
        return self._current is not None and token.generation == self._current.generation

    def finish(self, token: SweepToken) -> None:
        if self.is_current(token):
            self._task = None
