"""
Reconciliation view controller.

Holds the state behind one operator's reconciliation table: the device index
snapshot, the merged rows of the current sweep, open edit sessions, and the
filter/sort settings.  It talks to the inventory API only through
InventoryClient, so a UI layer (or a test) drives it with plain method calls.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from schemas import DeviceIndexEntry, MergedRow, ProbeResult, SiteGroup
from services.inventory_client import InventoryClient, InventoryClientError
from services.reconcile import (
    ALIVE_FILTERS,
    SEARCH_FIELDS,
    RowEditSession,
    SortState,
    apply_saved_changes,
    build_device_index,
    filter_rows,
    merge,
    merge_row,
    sort_rows,
)
from services.sweep import SweepCoordinator, SweepToken
from services.targets import resolve_target
from utils.logging_utils import log_reconcile_complete, log_reconcile_start

logger = logging.getLogger(__name__)


class ReconciliationView:
    """State and actions for one reconciliation table."""

    def __init__(self, client: InventoryClient, operator: Optional[str] = None):
        self.client = client
        self.operator = operator

        self.device_index: Dict[str, DeviceIndexEntry] = {}
        self.inventory_loaded = False
        self.rows: List[MergedRow] = []
        self.site_groups: List[SiteGroup] = []
        self.sessions: Dict[str, RowEditSession] = {}

        self.alive_filter = "all"
        self.search_field = "ip"
        self.search_term = ""

        self.loading = False
        self.error: Optional[str] = None
        self.recently_saved: Optional[MergedRow] = None

        self._probe_results: Dict[str, ProbeResult] = {}
        self._sort = SortState()
        self._sweeps = SweepCoordinator()

    # ── Loading ───────────────────────────────────────────────────────

    async def load_inventory(self) -> None:
        """Fetch the device index snapshot that sweeps are merged against."""
        try:
            entries = await self.client.fetch_devices()
        except InventoryClientError as e:
            self.error = str(e)
            raise
        self.device_index = build_device_index(entries)
        self.inventory_loaded = True
        self.error = None
        logger.debug(f"Loaded {len(self.device_index)} device records")

    async def load_site_groups(self) -> List[SiteGroup]:
        """Fetch the site picker's groups; each site lists its assigned IPs."""
        try:
            groups = await self.client.fetch_site_groups()
        except InventoryClientError as e:
            self.error = str(e)
            raise
        self.site_groups = groups
        self.error = None
        return groups

    async def refresh(self, option: str) -> bool:
        """
        Sweep the operator's selection and merge the results into the table.

        Starting a refresh cancels any sweep still in flight.  Returns False
        when this sweep was superseded before its results could be applied.
        """
        ip_range = resolve_target(option)
        if not self.inventory_loaded:
            await self.load_inventory()

        token = self._sweeps.begin(ip_range)
        task = asyncio.ensure_future(self.client.fetch_status(ip_range))
        self._sweeps.attach(token, task)
        self.loading = True
        try:
            results = await task
        except asyncio.CancelledError:
            if self._sweeps.is_current(token):
                raise
            logger.info(
                f"Sweep of {ip_range} cancelled by a newer sweep",
                extra={'generation': token.generation},
            )
            return False
        except InventoryClientError as e:
            if not self._sweeps.is_current(token):
                return False
            self.error = str(e)
            raise
        finally:
            if self._sweeps.is_current(token):
                self.loading = False
            self._sweeps.finish(token)

        return self._apply(token, results)

    def _apply(self, token: SweepToken, results: List[ProbeResult]) -> bool:
        """Merge ``results`` into the table unless ``token`` has been superseded."""
        if not self._sweeps.is_current(token):
            logger.info(
                f"Discarding results of superseded sweep {token.target}",
                extra={'generation': token.generation},
            )
            return False

        start = log_reconcile_start(logger, token.target, len(results))
        self._probe_results = {result.ip: result for result in results}
        self.rows = merge(results, self.device_index)
        self.sessions = {ip: s for ip, s in self.sessions.items() if ip in self._probe_results}
        self.error = None
        log_reconcile_complete(
            logger,
            token.target,
            start,
            input_count=len(results),
            output_count=len(self.rows),
            details={'alive': sum(1 for row in self.rows if row.alive)},
        )
        return True

    # ── Editing ───────────────────────────────────────────────────────

    def row(self, ip: str) -> MergedRow:
        for row in self.rows:
            if row.ip == ip:
                return row
        raise KeyError(f"No row for {ip}")

    def _replace_row(self, updated: MergedRow) -> None:
        self.rows = [updated if row.ip == updated.ip else row for row in self.rows]

    def start_edit(self, ip: str) -> RowEditSession:
        session = RowEditSession.start(self.row(ip))
        self.sessions[ip] = session
        return session

    def edit(self, ip: str, field_name: str, value: Optional[str]) -> RowEditSession:
        session = self.sessions[ip].with_field(field_name, value)
        self.sessions[ip] = session
        return session

    def cancel_edit(self, ip: str) -> None:
        self.sessions.pop(ip, None)

    async def save(self, ip: str) -> Optional[MergedRow]:
        """
        Commit the edit session for ``ip``.

        Sends only the changed fields, stamped with the operator and the
        modification time.  With no changes nothing is written and
        None is returned.  Invalid input raises RowValidationError and keeps
        the session open; a store failure keeps both the session and the row.
        """
        session = self.sessions[ip]
        changes = session.validate()
        if not changes:
            self.sessions.pop(ip, None)
            return None

        stamp: Dict[str, Any] = dict(changes)
        if self.operator:
            stamp["modifiedby"] = self.operator
        stamp["modifieddate"] = datetime.utcnow()
        payload = {**stamp, "modifieddate": stamp["modifieddate"].isoformat()}

        try:
            await self.client.update_ip(ip, payload)
        except InventoryClientError as e:
            self.error = str(e)
            raise

        updated = apply_saved_changes(session.snapshot, stamp)
        self._replace_row(updated)
        existing = self.device_index.get(ip) or DeviceIndexEntry(ipaddress=ip)
        self.device_index[ip] = existing.model_copy(update=stamp)
        self.sessions.pop(ip, None)
        self.recently_saved = updated
        self.error = None
        return updated

    def can_delete(self, ip: str) -> bool:
        return ip in self.device_index

    async def delete(self, ip: str) -> None:
        """Delete the stored record for ``ip``; its row falls back to probe fields only."""
        try:
            await self.client.delete_ip(ip)
        except InventoryClientError as e:
            self.error = str(e)
            raise

        self.device_index.pop(ip, None)
        self.sessions.pop(ip, None)
        probe = self._probe_results.get(ip)
        if probe is not None:
            self._replace_row(merge_row(probe, None))
        self.error = None

    # ── Filter / sort ─────────────────────────────────────────────────

    def set_filter(
        self,
        alive_filter: Optional[str] = None,
        search_field: Optional[str] = None,
        search_term: Optional[str] = None,
    ) -> None:
        if alive_filter is not None:
            if alive_filter not in ALIVE_FILTERS:
                raise ValueError(f"Invalid liveness filter '{alive_filter}'")
            self.alive_filter = alive_filter
        if search_field is not None:
            if search_field not in SEARCH_FIELDS:
                raise ValueError(f"Invalid search field '{search_field}'")
            self.search_field = search_field
        if search_term is not None:
            self.search_term = search_term

    def visible_rows(self) -> List[MergedRow]:
        return filter_rows(self.rows, self.alive_filter, self.search_field, self.search_term)

    def toggle_sort(self, key: str) -> bool:
        """Sort by ``key``, flipping that column's direction each call.  Returns True if ascending."""
        ascending = self._sort.toggle(key)
        self.rows = sort_rows(self.rows, key, ascending)
        return ascending
