from typing import Any, Dict, List, Optional

from fdcatalog.core.exceptions import CatalogError
from fdcatalog.database.models.fd_issuer_model import FDIssuer


def build_error_body(code: str, message: str, status_code: int, details: Optional[Any] = None) -> Dict[str, Any]:
    """Error envelope shared by every exception handler."""
    error: Dict[str, Any] = {
        "code": code,
        "message": message,
        "status_code": status_code,
    }
    if details is not None:
        error["details"] = details
    return {"error": error}


def build_catalog_error_body(exc: CatalogError) -> Dict[str, Any]:
    error = exc.to_dict()
    return build_error_body(error["code"], error["message"], error["status_code"], error.get("details"))


def build_issuer_response(issuer: FDIssuer) -> Dict[str, Any]:
    return issuer.model_dump(mode="json")


def build_issuer_list_response(issuers: List[FDIssuer]) -> List[Dict[str, Any]]:
    return [build_issuer_response(issuer) for issuer in issuers]


def catalog_path(issuer_key: str, scheme_id: Optional[str] = None, slab_id: Optional[str] = None) -> str:
    """``issuer_key[/scheme_id[/slab_id]]`` as recorded in the audit trail."""
    return "/".join(part for part in (issuer_key, scheme_id, slab_id) if part)
