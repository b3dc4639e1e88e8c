"""
API endpoints for per-IP device records.

Handles:
- Listing device records joined with their site assignment
- Transactional upsert of a device record and its site assignment
- Transactional delete of both
"""

import logging
from ipaddress import ip_address as parse_ip
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from schemas import DeviceIndexEntry, IPCheckUpsert, WriteAck
from services import inventory
from services.inventory import InventoryError
from utils.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ipcheck", tags=["ipcheck"])


@router.get("", response_model=List[DeviceIndexEntry])
async def list_ip_checks(db: AsyncSession = Depends(get_db)):
    """List device records, each with the site its IP is assigned to."""
    return await inventory.list_device_index(db)


@router.post("", response_model=WriteAck, response_model_exclude_none=True)
async def upsert_ip_check(data: IPCheckUpsert, db: AsyncSession = Depends(get_db)):
    """
    Upsert the device record for ``ip``.

    Fields missing from the body are left unchanged.  When ``sitename`` is
    sent, the site assignment is upserted in the same transaction.
    """
    try:
        written = await inventory.upsert_ip_check(db, data)
    except InventoryError as e:
        audit.log_ip_check_change(
            "UPSERT", data.ip, "failure", modified_by=data.modifiedby, error_message=e.details
        )
        raise

    audit.log_ip_check_change(
        "UPSERT", data.ip, "success", modified_by=data.modifiedby, changes=written
    )
    return WriteAck(message="Data upserted successfully")


@router.delete("", response_model=WriteAck, response_model_exclude_none=True)
async def delete_ip_check(
    ip: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Delete the device record and site assignment for ``ip`` together."""
    if not ip:
        return JSONResponse(status_code=400, content={"error": "IP address is required"})
    try:
        parse_ip(ip)
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid IP address", "details": f"'{ip}' is not an IP address"},
        )

    try:
        await inventory.delete_ip_check(db, ip)
    except InventoryError as e:
        audit.log_ip_check_change("DELETE", ip, "failure", error_message=e.details)
        raise

    audit.log_ip_check_change("DELETE", ip, "success")
    return WriteAck(message="IP deleted successfully")
