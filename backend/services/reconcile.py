"""
Merge/reconcile engine.

Handles:
- Merging sweep results with the persisted device index, one row per address
- Per-row edit sessions with field-level diffs and MAC validation
- Filtering and sorting of reconciliation rows

Field precedence is explicit (FIELD_PRECEDENCE) rather than implied by the
order in which dicts are overlaid.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from schemas import MAC_RE, DeviceIndexEntry, MergedRow, ProbeResult

PROBE = "probe"
DEVICE = "device"

# Sources per field, highest precedence first.  A field takes its value from
# the first source that defines it.  ``ip`` and ``alive`` only ever come from
# the probe: the row is keyed by the swept address and liveness is whatever
# the sweep observed.
FIELD_PRECEDENCE: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "ip": (PROBE,),
    "alive": (PROBE,),
    "time": (PROBE,),
    "min": (PROBE,),
    "max": (PROBE,),
    "avg": (PROBE,),
    "packet_loss": (PROBE,),
    "macaddress": (DEVICE, PROBE),
    "device": (DEVICE, PROBE),
    "location": (DEVICE, PROBE),
    "comment": (DEVICE, PROBE),
    "modifieddate": (DEVICE, PROBE),
    "modifiedby": (DEVICE, PROBE),
    "sitename": (DEVICE, PROBE),
})

# Fields an operator may edit inline
EDITABLE_FIELDS: Tuple[str, ...] = ("macaddress", "device", "location", "comment")

ALIVE_FILTERS = frozenset({"all", "true", "false"})
SEARCH_FIELDS = frozenset({"ip", "macaddress", "device", "comment"})
SORT_KEYS = frozenset({"ip", "macaddress"})


class RowValidationError(ValueError):
    """Raised when an edited row fails validation; nothing is written."""

    def __init__(self, ip: str, field_name: str, message: str):
        super().__init__(message)
        self.ip = ip
        self.field_name = field_name
        self.message = message


# ── Merge ─────────────────────────────────────────────────────────────

def build_device_index(entries: Iterable[DeviceIndexEntry]) -> Dict[str, DeviceIndexEntry]:
    """Key device index entries by IP address.  Later entries win."""
    return {entry.ipaddress: entry for entry in entries}


def _source_value(source: str, field_name: str, probe: ProbeResult, entry: Optional[DeviceIndexEntry]):
    if source == PROBE:
        return getattr(probe, field_name, None)
    if entry is None:
        return None
    return getattr(entry, field_name, None)


def merge_row(probe: ProbeResult, entry: Optional[DeviceIndexEntry]) -> MergedRow:
    """Build one row from a probe result and its (optional) device index entry."""
    values = {}
    for field_name, sources in FIELD_PRECEDENCE.items():
        for source in sources:
            value = _source_value(source, field_name, probe, entry)
            if value is not None:
                values[field_name] = value
                break
    return MergedRow(**values)


def merge(
    probe_results: Iterable[ProbeResult],
    device_index: Mapping[str, DeviceIndexEntry],
) -> List[MergedRow]:
    """
    Join probe results with the device index by IP address.

    Exactly one row per probe result, in probe order.  Addresses without a
    device record get only probe fields; the rest stay unset.
    """
    return [merge_row(probe, device_index.get(probe.ip)) for probe in probe_results]


# ── MAC addresses ─────────────────────────────────────────────────────

def format_mac_input(value: str) -> str:
    """
    Normalise MAC input as typed: keep hex digits only, upper-case them, and
    insert a colon after every pair (``"aabbccddeeff"`` -> ``"AA:BB:CC:DD:EE:FF"``).
    """
    digits = re.sub(r"[^0-9A-Fa-f]", "", value or "").upper()
    return ":".join(digits[i:i + 2] for i in range(0, len(digits), 2))


def is_valid_mac(value: str) -> bool:
    return bool(MAC_RE.match(value))


# ── Edit sessions ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class RowEditSession:
    """
    In-progress edit of one row.

    ``snapshot`` is the row as it was merged when editing started; ``draft``
    holds the operator's current values for the editable fields.  Sessions
    are immutable: ``with_field`` returns a new session.
    """

    ip: str
    snapshot: MergedRow
    draft: Mapping[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def start(cls, row: MergedRow) -> "RowEditSession":
        draft = {name: getattr(row, name) for name in EDITABLE_FIELDS}
        return cls(ip=row.ip, snapshot=row, draft=MappingProxyType(draft))

    def with_field(self, field_name: str, value: Optional[str]) -> "RowEditSession":
        if field_name not in EDITABLE_FIELDS:
            raise KeyError(f"Field '{field_name}' is not editable")
        if field_name == "macaddress" and value is not None:
            value = format_mac_input(value)
        draft = dict(self.draft)
        draft[field_name] = value
        return RowEditSession(ip=self.ip, snapshot=self.snapshot, draft=MappingProxyType(draft))

    def changed_fields(self) -> Dict[str, str]:
        """Fields whose draft value is defined and differs from the snapshot."""
        changes = {}
        for name in EDITABLE_FIELDS:
            value = self.draft.get(name)
            if value is None:
                continue
            if value != getattr(self.snapshot, name):
                changes[name] = value
        return changes

    def validate(self) -> Dict[str, str]:
        """Return the changed fields, or raise RowValidationError for the whole row."""
        changes = self.changed_fields()
        mac = changes.get("macaddress")
        if mac and not is_valid_mac(mac):
            raise RowValidationError(
                self.ip,
                "macaddress",
                f"MAC address '{mac}' is not valid. Expected XX:XX:XX:XX:XX:XX",
            )
        return changes


def apply_saved_changes(snapshot: MergedRow, changes: Mapping[str, object]) -> MergedRow:
    """The row after a successful save: snapshot plus changes, same ip and liveness."""
    update = dict(changes)
    update["ip"] = snapshot.ip
    update["alive"] = snapshot.alive
    return snapshot.model_copy(update=update)


# ── Filter / sort ─────────────────────────────────────────────────────

def _last_octet(ip: str) -> int:
    try:
        return int(ip.rsplit(".", 1)[-1])
    except ValueError:
        return -1


def _matches_search(row: MergedRow, search_field: str, search_term: str) -> bool:
    if search_field == "ip":
        return row.ip.rsplit(".", 1)[-1] == search_term
    if search_field in ("macaddress", "device", "comment"):
        value = getattr(row, search_field)
        if not value:
            return False
        return search_term.lower() in value.lower()
    return False


def filter_rows(
    rows: Iterable[MergedRow],
    alive_filter: str = "all",
    search_field: str = "ip",
    search_term: str = "",
) -> List[MergedRow]:
    """
    Keep rows matching the liveness filter and, when set, the search term.

    ``ip`` search is an exact match on the last octet; the other fields use
    a case-insensitive substring match.
    """
    kept = []
    for row in rows:
        if alive_filter != "all" and str(row.alive).lower() != alive_filter:
            continue
        if search_term and not _matches_search(row, search_field, search_term):
            continue
        kept.append(row)
    return kept


def sort_rows(rows: Iterable[MergedRow], key: str, ascending: bool = True) -> List[MergedRow]:
    """
    Sort rows by ``ip`` (numeric last octet) or ``macaddress`` (plain string
    order, rows without a MAC always last).
    """
    rows = list(rows)
    if key == "ip":
        return sorted(rows, key=lambda r: _last_octet(r.ip), reverse=not ascending)
    if key == "macaddress":
        with_mac = [r for r in rows if r.macaddress]
        without_mac = [r for r in rows if not r.macaddress]
        return sorted(with_mac, key=lambda r: r.macaddress, reverse=not ascending) + without_mac
    raise ValueError(f"Unsupported sort key '{key}'. Allowed: {', '.join(sorted(SORT_KEYS))}")


@dataclass
class SortState:
    """Per-column sort direction; each toggle flips that column's direction."""

    _next_ascending: Dict[str, bool] = field(default_factory=dict)

    def toggle(self, key: str) -> bool:
        if key not in SORT_KEYS:
            raise ValueError(f"Unsupported sort key '{key}'")
        ascending = self._next_ascending.get(key, True)
        self._next_ascending[key] = not ascending
        return ascending
