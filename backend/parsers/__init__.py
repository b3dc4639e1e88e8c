"""Parser package for reachability probe output."""

from .base import (
    BaseParser,
    ParseResult,
    PingStatistics,
)
from .ping import PingParser

__all__ = [
    "BaseParser",
    "ParseResult",
    "PingStatistics",
    "PingParser",
]
