from typing import List, Optional


class CatalogError(Exception):
    """Base class for every condition the FD catalog reports to its callers."""

    code = "catalog_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
        }


class NotFoundError(CatalogError):
    code = "not_found"
    status_code = 404


class IssuerNotFound(NotFoundError):
    code = "issuer_not_found"

    def __init__(self, issuer_key: str):
        super().__init__(f"Issuer not found: {issuer_key}")
        self.issuer_key = issuer_key


class SchemeNotFound(NotFoundError):
    code = "scheme_not_found"

    def __init__(self, issuer_key: str, scheme_id: str):
        super().__init__(f"Scheme not found: {scheme_id} (issuer {issuer_key})")
        self.issuer_key = issuer_key
        self.scheme_id = scheme_id


class SlabNotFound(NotFoundError):
    code = "slab_not_found"

    def __init__(self, issuer_key: str, scheme_id: str, slab_id: str):
        super().__init__(f"Rate slab not found: {slab_id} (issuer {issuer_key}, scheme {scheme_id})")
        self.issuer_key = issuer_key
        self.scheme_id = scheme_id
        self.slab_id = slab_id


class NoMatchingSlab(CatalogError):
    """Rate resolution found no active slab for the tenure and payout frequency."""

    code = "no_matching_slab"
    status_code = 404

    def __init__(self, scheme_id: str, tenure_months: int, payout_frequency: str):
        super().__init__(
            f"No matching rate slab found for scheme {scheme_id} "
            f"(tenure {tenure_months} months, payout {payout_frequency})"
        )
        self.scheme_id = scheme_id
        self.tenure_months = tenure_months
        self.payout_frequency = payout_frequency


class ValidationFailed(CatalogError):
    code = "validation_failed"
    status_code = 400

    def __init__(self, errors: List[str], message: str = "Validation failed"):
        super().__init__(message)
        self.errors = list(errors)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["details"] = self.errors
        return body


class ConflictError(CatalogError):
    code = "conflict"
    status_code = 409


class DuplicateKey(ConflictError):
    code = "duplicate_issuer_key"

    def __init__(self, issuer_key: str):
        super().__init__(f"Issuer with this key already exists: {issuer_key}")
        self.issuer_key = issuer_key


class DuplicateSchemeId(ConflictError):
    code = "duplicate_scheme_id"

    def __init__(self, issuer_key: str, scheme_id: str):
        super().__init__(f"Scheme with this ID already exists: {scheme_id} (issuer {issuer_key})")
        self.issuer_key = issuer_key
        self.scheme_id = scheme_id


class DuplicateSlabId(ConflictError):
    code = "duplicate_slab_id"

    def __init__(self, issuer_key: str, scheme_id: str, slab_id: str):
        super().__init__(f"Rate slab with this ID already exists: {slab_id} (issuer {issuer_key}, scheme {scheme_id})")
        self.issuer_key = issuer_key
        self.scheme_id = scheme_id
        self.slab_id = slab_id


class ConcurrentModification(ConflictError):
    """The issuer document changed between load and replace."""

    code = "concurrent_modification"

    def __init__(self, issuer_key: str, expected_revision: Optional[int] = None):
        super().__init__(
            f"Issuer {issuer_key} was modified by another request "
            f"(expected revision {expected_revision}); reload and retry"
        )
        self.issuer_key = issuer_key
        self.expected_revision = expected_revision


class KeyGenerationExhausted(CatalogError):
    code = "key_generation_exhausted"
    status_code = 400

    def __init__(self, base_key: str, attempts: int):
        super().__init__(
            f"Unable to generate unique issuer key from '{base_key}' after {attempts} attempts; "
            "supply an explicit issuer_key"
        )
        self.base_key = base_key
        self.attempts = attempts
