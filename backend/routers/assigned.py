from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from schemas import AssignedIPCreate, AssignedIPDelete, AssignedIPResponse, WriteAck
from services import inventory
from utils.audit import audit

router = APIRouter(prefix="/api/assigned", tags=["assigned"])


@router.get("", response_model=List[AssignedIPResponse])
async def list_assignments(db: AsyncSession = Depends(get_db)):
    """List all IP-to-site assignments."""
    return await inventory.list_assignments(db)


@router.post("", response_model=WriteAck)
async def upsert_assignment(assignment: AssignedIPCreate, db: AsyncSession = Depends(get_db)):
    """Assign an IP to a site, replacing any previous assignment for that IP."""
    affected = await inventory.upsert_assignment(db, assignment)
    audit.log_assignment_change("UPSERT", assignment.ipaddress, assignment.sitename)
    return WriteAck(message="Data upserted successfully", affected_rows=affected)


@router.delete("", response_model=WriteAck, response_model_exclude_none=True)
async def delete_assignment(assignment: AssignedIPDelete, db: AsyncSession = Depends(get_db)):
    """Remove the site assignment of an IP."""
    await inventory.delete_assignment(db, assignment.ipaddress)
    audit.log_assignment_change("DELETE", assignment.ipaddress)
    return WriteAck(message="IP address deleted successfully")
