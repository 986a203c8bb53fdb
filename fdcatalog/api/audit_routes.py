from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional, Dict
from datetime import datetime
import logging

from fdcatalog.core.auth_dependencies import get_admin_user
from fdcatalog.services.audit_service import audit_service

router = APIRouter(prefix="/audits", tags=["Audits"])

logger = logging.getLogger(__name__)


# Parses a YYYY-MM-DD query value; end dates cover the whole day
def _parse_day(value: Optional[str], name: str, end_of_day: bool = False) -> Optional[datetime]:
    if not value:
        return None
    try:
        day = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name} format, expected YYYY-MM-DD")
    if end_of_day:
        return day.replace(hour=23, minute=59, second=59, microsecond=999999)
    return day


# Lists the audit trail of catalog mutations, optionally narrowed to one issuer, scheme or slab
@router.get("/", status_code=200)
async def list_audits(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=1000),
    issuer_key: Optional[str] = Query(default=None, description="Issuer whose catalog changes to list"),
    scheme_id: Optional[str] = Query(default=None, description="Narrows to one scheme of the issuer"),
    slab_id: Optional[str] = Query(default=None, description="Narrows to one slab of the scheme"),
    entity: Optional[str] = Query(default=None, pattern="^fd_(issuer|scheme|slab)$"),
    actor: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None, pattern="^(successful|failed)$"),
    start_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    current_user: Dict = Depends(get_admin_user)
):
    if (scheme_id or slab_id) and not issuer_key:
        raise HTTPException(status_code=400, detail="scheme_id and slab_id require issuer_key")
    if slab_id and not scheme_id:
        raise HTTPException(status_code=400, detail="slab_id requires scheme_id")

    filters = {
        "issuer_key": issuer_key,
        "scheme_id": scheme_id,
        "slab_id": slab_id,
        "entity": entity,
        "actor": actor,
        "status": status,
        "start_date": _parse_day(start_date, "start_date"),
        "end_date": _parse_day(end_date, "end_date", end_of_day=True),
    }

    try:
        return await audit_service.get_audits(skip=skip, limit=limit, filters=filters)
    except Exception as e:
        logger.error(f"Error listing audits: {e}")
        raise HTTPException(status_code=500, detail="Failed to list audit logs")
