from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from schemas import SiteCreate, SiteDelete, SiteGroup, SiteResponse, WriteAck
from services import inventory
from services.targets import group_sites
from utils.audit import audit

router = APIRouter(prefix="/api/site", tags=["site"])


@router.get("", response_model=List[SiteResponse])
async def list_sites(db: AsyncSession = Depends(get_db)):
    """List all sites."""
    return await inventory.list_sites(db)


@router.get("/groups", response_model=List[SiteGroup])
async def list_site_groups(db: AsyncSession = Depends(get_db)):
    """
    Sites grouped by the part of ``sitename`` before the first dot, each
    with the IP addresses assigned to it.
    """
    sites = await inventory.list_sites(db)
    assignments = await inventory.list_assignments(db)
    return group_sites(sites, assignments)


@router.post("", response_model=WriteAck)
async def upsert_site(site: SiteCreate, db: AsyncSession = Depends(get_db)):
    """Create a site, or update the full name of an existing one."""
    affected = await inventory.upsert_site(db, site)
    audit.log_site_change("UPSERT", site.sitename, affected)
    return WriteAck(message="Data upserted successfully", affected_rows=affected)


@router.delete("", response_model=WriteAck)
async def delete_site(site: SiteDelete, db: AsyncSession = Depends(get_db)):
    """Delete a site by name.  Assignments that reference it are left in place."""
    affected = await inventory.delete_site(db, site.sitename)
    audit.log_site_change("DELETE", site.sitename, affected)
    return WriteAck(message="Site deleted successfully", affected_rows=affected)
