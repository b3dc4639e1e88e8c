"""Services package for IP Check."""

from .inventory import InventoryError, RecordNotFoundError
from .prober import Prober, get_prober
from .reconcile import (
    FIELD_PRECEDENCE,
    RowEditSession,
    RowValidationError,
    filter_rows,
    merge,
    sort_rows,
)
from .sweep import (
    InvalidTargetError,
    SweepCoordinator,
    SweepTarget,
    parse_target,
    sweep,
)

__all__ = [
    "InventoryError",
    "RecordNotFoundError",
    "Prober",
    "get_prober",
    "FIELD_PRECEDENCE",
    "RowEditSession",
    "RowValidationError",
    "filter_rows",
    "merge",
    "sort_rows",
    "InvalidTargetError",
    "SweepCoordinator",
    "SweepTarget",
    "parse_target",
    "sweep",
]
