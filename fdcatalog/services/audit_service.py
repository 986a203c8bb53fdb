import logging
import re
from typing import Optional, Dict, Any
from datetime import datetime

from fdcatalog.database.models.audit_log_model import AuditLog
from fdcatalog.helpers.response_builder import catalog_path

logger = logging.getLogger(__name__)


class AuditService:
    """Writes and reads the audit trail of FD catalog mutations stored in MongoDB using Beanie."""

    async def create_audit(self, *, action: str, actor: Optional[str] = None, acted: Optional[str] = None, status: str = "successful", detail: Optional[str] = None, timestamp: Optional[datetime] = None) -> AuditLog:
        try:
            payload = {
                "action": action,
                "actor": actor,
                "acted": acted,
                "status": status,
                "detail": detail,
                "timestamp": timestamp or datetime.now()
            }

            try:
                audit = AuditLog(**payload)
            except Exception as ve:
                logger.error(f"AuditLog validation failed when creating audit (payload={payload}): {ve}")
                raise

            await audit.insert()
            return audit
        except Exception as e:
            logger.error(f"Failed to create audit log: {e}")
            raise

    # Records a mutation outcome; audit failures are logged and never reach the caller
    async def record(self, *, action: str, actor: Optional[str], acted: Optional[str], status: str = "successful", detail: Optional[str] = None) -> None:
        try:
            await self.create_audit(action=action, actor=actor, acted=acted, status=status, detail=detail)
        except Exception:
            logger.exception(f"Failed to write audit log for {action} on {acted}")

    async def get_audits(self, skip: int = 0, limit: int = 50, filters: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        query = build_audit_query(**(filters or {}))
        try:
            total = await AuditLog.find(query).count()
            docs = await AuditLog.find(query).sort("-timestamp").skip(skip).limit(limit).to_list()
        except Exception as e:
            logger.error(f"Failed to query audit logs (query={query}): {e}")
            raise

        return {
            "data": [serialize_audit(doc) for doc in docs],
            "total": total,
            "skip": skip,
            "limit": limit,
        }


def build_audit_query(
    issuer_key: Optional[str] = None,
    scheme_id: Optional[str] = None,
    slab_id: Optional[str] = None,
    entity: Optional[str] = None,
    actor: Optional[str] = None,
    status: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Mongo filter over the audit trail of the catalog.

    ``issuer_key``/``scheme_id``/``slab_id`` select a catalog path and
    everything below it, so ``issuer_key="hdfc"`` also matches
    ``hdfc/FD01/S1``. ``entity`` is the action prefix (``fd_issuer``,
    ``fd_scheme`` or ``fd_slab``).
    """
    query: Dict[str, Any] = {}

    path = catalog_path(issuer_key, scheme_id, slab_id) if issuer_key else None
    if path:
        query["acted"] = {"$regex": f"^{re.escape(path)}(/|$)"}
    if entity:
        query["action"] = {"$regex": f"^{re.escape(entity)}\\."}
    if actor:
        query["actor"] = actor
    if status:
        query["status"] = status

    window = {}
    if start_date:
        window["$gte"] = start_date
    if end_date:
        window["$lte"] = end_date
    if window:
        query["timestamp"] = window
    return query


def serialize_audit(doc: AuditLog) -> Dict[str, Any]:
    return {
        "id": str(doc.id),
        "action": doc.action,
        "actor": doc.actor,
        "acted": doc.acted,
        "timestamp": doc.timestamp.isoformat() if doc.timestamp else None,
        "status": doc.status,
        "detail": doc.detail,
    }


audit_service = AuditService()
