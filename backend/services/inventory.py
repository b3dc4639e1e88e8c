"""
Inventory store operations.

Handles:
- Sites: list, upsert, delete
- Site assignments (IP -> site): list, upsert, delete
- Device records: list joined with assignments, transactional upsert/delete

Every write runs in its own transaction.  Driver errors are rolled back and
re-raised as InventoryError so callers never see raw SQLAlchemy exceptions.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import AssignedIP, IPCheck, Site
from schemas import (
    AssignedIPCreate,
    AssignedIPResponse,
    DeviceIndexEntry,
    IPCheckUpsert,
    SiteCreate,
    SiteResponse,
)

logger = logging.getLogger(__name__)

# Wire name -> IPCheck attribute
_IP_CHECK_ATTRIBUTES: Dict[str, str] = {
    "macaddress": "mac_address",
    "device": "device",
    "location": "location",
    "comment": "comment",
    "modifiedby": "modified_by",
}


class InventoryError(Exception):
    """A store operation failed and was rolled back."""

    def __init__(self, error: str, details: str):
        super().__init__(f"{error}: {details}")
        self.error = error
        self.details = details


class RecordNotFoundError(Exception):
    """A delete targeted a record that does not exist."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── Sites ─────────────────────────────────────────────────────────────

async def list_sites(db: AsyncSession) -> List[SiteResponse]:
    try:
        result = await db.execute(select(Site).order_by(Site.id))
    except SQLAlchemyError as e:
        logger.error(f"Failed to list sites: {e}", exc_info=True)
        raise InventoryError("Failed to fetch data", str(e)) from e
    return [SiteResponse.model_validate(site) for site in result.scalars().all()]


async def upsert_site(db: AsyncSession, site: SiteCreate) -> int:
    """Insert the site, or update its full name if it exists.  Returns rows affected."""
    try:
        async with db.begin():
            result = await db.execute(select(Site).where(Site.sitename == site.sitename))
            existing = result.scalar_one_or_none()
            if existing is None:
                db.add(Site(sitename=site.sitename, sitefullname=site.sitefullname))
            else:
                existing.sitefullname = site.sitefullname
    except SQLAlchemyError as e:
        logger.error(f"Failed to upsert site {site.sitename}: {e}", exc_info=True)
        raise InventoryError("Failed to upsert data", str(e)) from e
    return 1


async def delete_site(db: AsyncSession, sitename: str) -> int:
    try:
        async with db.begin():
            result = await db.execute(delete(Site).where(Site.sitename == sitename))
            if result.rowcount == 0:
                raise RecordNotFoundError("Site not found")
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete site {sitename}: {e}", exc_info=True)
        raise InventoryError("Failed to delete site", str(e)) from e
    return result.rowcount


# ── Site assignments ──────────────────────────────────────────────────

async def list_assignments(db: AsyncSession) -> List[AssignedIPResponse]:
    try:
        result = await db.execute(select(AssignedIP).order_by(AssignedIP.id))
    except SQLAlchemyError as e:
        logger.error(f"Failed to list assignments: {e}", exc_info=True)
        raise InventoryError("Failed to fetch data", str(e)) from e
    return [
        AssignedIPResponse(ipaddress=row.ip_address, sitename=row.sitename)
        for row in result.scalars().all()
    ]


async def _upsert_assignment_row(db: AsyncSession, ip: str, sitename: Optional[str]) -> None:
    result = await db.execute(select(AssignedIP).where(AssignedIP.ip_address == ip))
    existing = result.scalar_one_or_none()
    if existing is None:
        db.add(AssignedIP(ip_address=ip, sitename=sitename))
    else:
        existing.sitename = sitename
    await db.flush()


async def upsert_assignment(db: AsyncSession, assignment: AssignedIPCreate) -> int:
    try:
        async with db.begin():
            await _upsert_assignment_row(db, assignment.ipaddress, assignment.sitename)
    except SQLAlchemyError as e:
        logger.error(f"Failed to upsert assignment {assignment.ipaddress}: {e}", exc_info=True)
        raise InventoryError("Failed to upsert data", str(e)) from e
    return 1


async def delete_assignment(db: AsyncSession, ip: str) -> int:
    try:
        async with db.begin():
            result = await db.execute(delete(AssignedIP).where(AssignedIP.ip_address == ip))
            if result.rowcount == 0:
                raise RecordNotFoundError("IP address not found")
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete assignment {ip}: {e}", exc_info=True)
        raise InventoryError("Failed to delete data", str(e)) from e
    return result.rowcount


# ── Device records ────────────────────────────────────────────────────

async def list_device_index(db: AsyncSession) -> List[DeviceIndexEntry]:
    """All device records, each with the site its IP is assigned to (if any)."""
    stmt = (
        select(IPCheck, AssignedIP.sitename)
        .outerjoin(AssignedIP, AssignedIP.ip_address == IPCheck.ip_address)
        .order_by(IPCheck.id)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Failed to list device records: {e}", exc_info=True)
        raise InventoryError("Failed to fetch data", str(e)) from e

    return [
        DeviceIndexEntry(
            ipaddress=record.ip_address,
            macaddress=record.mac_address,
            device=record.device,
            location=record.location,
            comment=record.comment,
            modifieddate=record.modified_date,
            modifiedby=record.modified_by,
            sitename=sitename,
        )
        for record, sitename in result.all()
    ]


async def upsert_ip_check(db: AsyncSession, data: IPCheckUpsert) -> List[str]:
    """
    Upsert a device record, and its site assignment when ``sitename`` was sent,
    in one transaction.

    Only fields present in the request body are written, so a partial update
    never clears fields the caller did not send.  Returns the names of the
    fields written.
    """
    fields = data.model_dump(exclude_unset=True)
    ip = fields.pop("ip")
    assign_site = "sitename" in fields
    sitename = fields.pop("sitename", None)
    modified_date = fields.pop("modifieddate", None) or datetime.utcnow()

    try:
        async with db.begin():
            if assign_site:
                await _upsert_assignment_row(db, ip, sitename)

            result = await db.execute(select(IPCheck).where(IPCheck.ip_address == ip))
            record = result.scalar_one_or_none()
            if record is None:
                record = IPCheck(ip_address=ip)
                db.add(record)

            for name, value in fields.items():
                setattr(record, _IP_CHECK_ATTRIBUTES[name], value)
            record.modified_date = modified_date
    except SQLAlchemyError as e:
        logger.error(f"Failed to upsert device record {ip}: {e}", exc_info=True)
        raise InventoryError("Failed to upsert data", str(e)) from e

    written = list(fields)
    if assign_site:
        written.append("sitename")
    return written


async def delete_ip_check(db: AsyncSession, ip: str) -> int:
    """Delete the device record and the site assignment for ``ip`` atomically."""
    try:
        async with db.begin():
            device_result = await db.execute(delete(IPCheck).where(IPCheck.ip_address == ip))
            assigned_result = await db.execute(delete(AssignedIP).where(AssignedIP.ip_address == ip))
            removed = device_result.rowcount + assigned_result.rowcount
            if removed == 0:
                raise RecordNotFoundError("IP address not found")
    except SQLAlchemyError as e:
        logger.error(f"Failed to delete IP {ip}: {e}", exc_info=True)
        raise InventoryError("Failed to delete IP", str(e)) from e
    return removed
