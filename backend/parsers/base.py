"""Base classes and data structures for probe output parsing."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime


@dataclass
class PingStatistics:
    """Statistics extracted from one ping run against a single host."""

    ip_address: Optional[str] = None
    packets_transmitted: Optional[int] = None
    packets_received: Optional[int] = None
    packet_loss: Optional[str] = None  # percent, as printed ("0", "33.3")
    reply_times_ms: List[float] = field(default_factory=list)
    min_ms: Optional[str] = None
    avg_ms: Optional[str] = None
    max_ms: Optional[str] = None

    @property
    def first_reply_ms(self) -> Optional[float]:
        return self.reply_times_ms[0] if self.reply_times_ms else None

    @property
    def alive(self) -> bool:
        if self.reply_times_ms:
            return True
        return bool(self.packets_received)


@dataclass
class ParseResult:
    """Result of parsing operation."""

    success: bool
    source_type: str
    statistics: Optional[PingStatistics] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    parsed_at: datetime = field(default_factory=datetime.utcnow)


class BaseParser(ABC):
    """Abstract base class for all parsers."""

    source_type: str = "unknown"

    @abstractmethod
    def parse(self, data: str, **kwargs) -> ParseResult:
        """Parse input data and return structured result."""
        pass

    def detect_format(self, data: str) -> Optional[str]:
        """Detect the format of input data. Override in subclasses."""
        return None
