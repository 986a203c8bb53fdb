from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi import status
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from fdcatalog.core.auth_dependencies import get_admin_user
from fdcatalog.core.exceptions import CatalogError
from fdcatalog.database.models.fd_issuer_model import FDScheme, RateSlab
from fdcatalog.helpers.response_builder import (
    build_issuer_list_response,
    build_issuer_response,
    catalog_path,
)
from fdcatalog.schemas.fd_scheme_schema import (
    IssuerCreateRequest,
    IssuerUpdateRequest,
    RateRequest,
    SchemeUpdateRequest,
    SlabUpdateRequest,
)
from fdcatalog.services.audit_service import audit_service
from fdcatalog.services.fd_catalog_service import FDCatalogService, fd_catalog_service

logger = logging.getLogger(__name__)


# Returns the catalog service instance or raises an error if unavailable
def get_fd_catalog_service() -> FDCatalogService:
    if fd_catalog_service is None:
        logger.error("FD catalog service is not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="FD catalog service is not initialized. Please contact system administrator."
        )
    return fd_catalog_service


router = APIRouter(prefix="/fd-schemes", tags=["FD Schemes"])


# Runs an admin mutation and records its outcome in the audit trail.
# CatalogError propagates to the application handler; anything else is a 500.
# acted_on_success names the target once it is known, e.g. a derived issuer key.
async def _audited(action: str, current_user: Dict, acted: str, operation: Awaitable, failure_detail: str,
                   acted_on_success: Optional[Callable[[Any], str]] = None) -> Any:
    actor = current_user.get("sub")
    try:
        result = await operation
    except CatalogError as e:
        await audit_service.record(action=action, actor=actor, acted=acted, status="failed", detail=e.message)
        raise
    except Exception as e:
        logger.error(f"Error during {action} on {acted}: {e}")
        await audit_service.record(action=action, actor=actor, acted=acted, status="failed", detail=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=failure_detail
        )
    if acted_on_success is not None:
        acted = acted_on_success(result)
    await audit_service.record(action=action, actor=actor, acted=acted)
    return result


# ===================================
# READ OPERATIONS (no authentication)
# ===================================

# Lists FD issuers, active ones only by default
@router.get("/issuers", response_model=List[Dict[str, Any]])
async def list_issuers(
    active_only: bool = Query(default=True, description="Only return active issuers"),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    try:
        issuers = await service.list_issuers(active_only=active_only)
        return build_issuer_list_response(issuers)
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching FD issuers: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch FD issuers")


# Retrieves a single issuer with all nested schemes and slabs
@router.get("/issuer/{issuer_key}", response_model=Dict[str, Any])
async def get_issuer(issuer_key: str, service: FDCatalogService = Depends(get_fd_catalog_service)):
    try:
        issuer = await service.get_issuer(issuer_key)
        return build_issuer_response(issuer)
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching FD issuer {issuer_key}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch FD issuer")


# Lists the schemes of an issuer, active ones only by default
@router.get("/issuer/{issuer_key}/schemes", response_model=List[Dict[str, Any]])
async def list_schemes(
    issuer_key: str,
    active_only: bool = Query(default=True, description="Only return active schemes"),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    try:
        schemes = await service.list_schemes(issuer_key, active_only=active_only)
        return [scheme.model_dump(mode="json") for scheme in schemes]
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching FD schemes for {issuer_key}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch FD schemes")


# Retrieves a single scheme with its rate slabs
@router.get("/issuer/{issuer_key}/scheme/{scheme_id}", response_model=Dict[str, Any])
async def get_scheme(issuer_key: str, scheme_id: str, service: FDCatalogService = Depends(get_fd_catalog_service)):
    try:
        scheme = await service.get_scheme(issuer_key, scheme_id)
        return scheme.model_dump(mode="json")
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching FD scheme {issuer_key}/{scheme_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch FD scheme")


# Lists the rate slabs of a scheme in stored order
@router.get("/issuer/{issuer_key}/scheme/{scheme_id}/slabs", response_model=List[Dict[str, Any]])
async def list_slabs(issuer_key: str, scheme_id: str, service: FDCatalogService = Depends(get_fd_catalog_service)):
    try:
        slabs = await service.list_slabs(issuer_key, scheme_id)
        return [slab.model_dump(mode="json") for slab in slabs]
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error fetching rate slabs for {issuer_key}/{scheme_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch rate slabs")


# Resolves the applicable interest rate and effective yield for a deposit
@router.post("/calculate-rate", response_model=Dict[str, Any])
async def calculate_rate(request_data: RateRequest, service: FDCatalogService = Depends(get_fd_catalog_service)):
    try:
        result = await service.resolve_rate(request_data)
        return result.model_dump(mode="json")
    except CatalogError:
        raise
    except Exception as e:
        logger.error(f"Error calculating rate: {e}")
        raise HTTPException(status_code=500, detail="Failed to calculate rate")


# ===================================
# WRITE OPERATIONS (Admin only)
# ===================================

@router.post("/issuer", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_issuer(
    request_data: IssuerCreateRequest,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = request_data.issuer_key or request_data.short_name
    issuer = await _audited("fd_issuer.create", current_user, acted, service.create_issuer(request_data), "Failed to create issuer",
                            acted_on_success=lambda created: created.issuer_key)
    return build_issuer_response(issuer)


# Updates top-level issuer fields; the key in the path is never changed
@router.put("/issuer/{issuer_key}", response_model=Dict[str, Any])
async def update_issuer(
    issuer_key: str,
    request_data: IssuerUpdateRequest,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    issuer = await _audited("fd_issuer.update", current_user, issuer_key, service.update_issuer(issuer_key, request_data), "Failed to update issuer")
    return build_issuer_response(issuer)


@router.delete("/issuer/{issuer_key}", response_model=Dict[str, Any])
async def delete_issuer(
    issuer_key: str,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    await _audited("fd_issuer.delete", current_user, issuer_key, service.delete_issuer(issuer_key), "Failed to delete issuer")
    return {"message": "Issuer deleted successfully"}


@router.post("/issuer/{issuer_key}/scheme", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def add_scheme(
    issuer_key: str,
    request_data: FDScheme,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = catalog_path(issuer_key, request_data.scheme_id)
    scheme = await _audited("fd_scheme.create", current_user, acted, service.add_scheme(issuer_key, request_data), "Failed to add scheme")
    return scheme.model_dump(mode="json")


@router.put("/issuer/{issuer_key}/scheme/{scheme_id}", response_model=Dict[str, Any])
async def update_scheme(
    issuer_key: str,
    scheme_id: str,
    request_data: SchemeUpdateRequest,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = catalog_path(issuer_key, scheme_id)
    scheme = await _audited("fd_scheme.update", current_user, acted, service.update_scheme(issuer_key, scheme_id, request_data), "Failed to update scheme")
    return scheme.model_dump(mode="json")


@router.delete("/issuer/{issuer_key}/scheme/{scheme_id}", response_model=Dict[str, Any])
async def delete_scheme(
    issuer_key: str,
    scheme_id: str,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = catalog_path(issuer_key, scheme_id)
    await _audited("fd_scheme.delete", current_user, acted, service.delete_scheme(issuer_key, scheme_id), "Failed to delete scheme")
    return {"message": "Scheme deleted successfully"}


@router.post("/issuer/{issuer_key}/scheme/{scheme_id}/slab", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def add_slab(
    issuer_key: str,
    scheme_id: str,
    request_data: RateSlab,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = catalog_path(issuer_key, scheme_id, request_data.slab_id)
    slab = await _audited("fd_slab.create", current_user, acted, service.add_slab(issuer_key, scheme_id, request_data), "Failed to add rate slab")
    return slab.model_dump(mode="json")


@router.put("/issuer/{issuer_key}/scheme/{scheme_id}/slab/{slab_id}", response_model=Dict[str, Any])
async def update_slab(
    issuer_key: str,
    scheme_id: str,
    slab_id: str,
    request_data: SlabUpdateRequest,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = catalog_path(issuer_key, scheme_id, slab_id)
    slab = await _audited("fd_slab.update", current_user, acted, service.update_slab(issuer_key, scheme_id, slab_id, request_data), "Failed to update rate slab")
    return slab.model_dump(mode="json")


@router.delete("/issuer/{issuer_key}/scheme/{scheme_id}/slab/{slab_id}", response_model=Dict[str, Any])
async def delete_slab(
    issuer_key: str,
    scheme_id: str,
    slab_id: str,
    current_user: Dict = Depends(get_admin_user),
    service: FDCatalogService = Depends(get_fd_catalog_service)
):
    acted = catalog_path(issuer_key, scheme_id, slab_id)
    await _audited("fd_slab.delete", current_user, acted, service.delete_slab(issuer_key, scheme_id, slab_id), "Failed to delete rate slab")
    return {"message": "Rate slab deleted successfully"}
