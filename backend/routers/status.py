"""
Reachability status endpoint.

GET /api/status?ipRange=10.0.0      sweeps 10.0.0.1 - 10.0.0.254
GET /api/status?ipRange=num10.0.0.7 probes the single host 10.0.0.7
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from schemas import ProbeResult
from services.prober import Prober, get_prober
from services.sweep import parse_target, sweep
from utils.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/status", tags=["status"])


@router.get("", response_model=List[ProbeResult], response_model_exclude_none=True)
async def get_status(
    ip_range: Optional[str] = Query(None, alias="ipRange"),
    prober: Prober = Depends(get_prober),
):
    """
    Probe every address of ``ipRange`` concurrently.

    Returns one result per address in address order.  Unreachable hosts and
    hosts whose probe failed are reported with ``alive: false``.
    """
    # InvalidTargetError is turned into a 400 by the app-level handler
    target = parse_target(ip_range)

    try:
        results = await sweep(target, prober)
    except Exception as e:
        logger.error(f"Failed to check IPs for {target.raw}: {e}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to check IPs", "details": str(e)},
        )

    audit.log_sweep(
        target=target.raw,
        host_count=len(results),
        alive_count=sum(1 for result in results if result.alive),
    )
    return results
