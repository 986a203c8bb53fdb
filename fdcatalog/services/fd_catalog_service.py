import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from fdcatalog.core.config import settings
from fdcatalog.core.exceptions import (
    ConflictError,
    DuplicateKey,
    DuplicateSchemeId,
    DuplicateSlabId,
    IssuerNotFound,
    KeyGenerationExhausted,
    SchemeNotFound,
    SlabNotFound,
    ValidationFailed,
)
from fdcatalog.database.models.fd_issuer_model import FDIssuer, FDScheme, RateSlab
from fdcatalog.schemas.fd_scheme_schema import (
    IssuerCreateRequest,
    IssuerUpdateRequest,
    RateRequest,
    RateResult,
    SchemeUpdateRequest,
    SlabUpdateRequest,
)
from fdcatalog.services.fd_issuer_store import FDIssuerStore, fd_issuer_store
from fdcatalog.services.fd_validation import validate_issuer
from fdcatalog.services import rate_engine

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Validator = Callable[[FDIssuer], List[str]]


class MutationState(str, Enum):
    loaded = "Loaded"
    modified = "Modified"
    validated = "Validated"
    committed = "Committed"
    rejected = "Rejected"


class CatalogMutation:
    """One read-modify-validate-replace cycle over a single issuer document.

    Loaded -> Modified -> Validated -> Committed, or Loaded -> Modified ->
    Rejected. A rejected mutation never reaches the store.
    """

    def __init__(self, issuer: FDIssuer, action: str):
        self.original = issuer
        self.draft = issuer.model_copy(deep=True)
        self.action = action
        self.state = MutationState.loaded

    def modify(self, change: Callable[[FDIssuer], Optional[FDIssuer]]) -> None:
        result = change(self.draft)
        if result is not None:
            self.draft = result
        self.state = MutationState.modified

    def validate(self, validator: Validator, required: bool = True) -> None:
        if self.state != MutationState.modified:
            raise RuntimeError(f"Cannot validate a mutation in state {self.state.value}")
        if required:
            try:
                ensure_unique_ids(self.draft)
            except ConflictError as e:
                self.state = MutationState.rejected
                logger.warning(f"{self.action} on issuer {self.original.issuer_key} rejected: {e.message}")
                raise
        errors = validator(self.draft) if required else []
        if errors:
            self.state = MutationState.rejected
            logger.warning(f"{self.action} on issuer {self.original.issuer_key} rejected: {errors}")
            raise ValidationFailed(errors)
        self.state = MutationState.validated

    async def commit(self, store: FDIssuerStore) -> FDIssuer:
        if self.state != MutationState.validated:
            raise RuntimeError(f"Cannot commit a mutation in state {self.state.value}")
        committed = self.draft.model_copy(update={
            "issuer_key": self.original.issuer_key,
            "revision": self.original.revision + 1,
            "updated_at": datetime.utcnow(),
        })
        await store.replace(committed, expected_revision=self.original.revision)
        self.state = MutationState.committed
        logger.info(f"{self.action} on issuer {committed.issuer_key} committed (revision {committed.revision})")
        return committed


# Derives the base issuer key: lower-cased short name, whitespace runs collapsed to "_"
def derive_base_key(short_name: str) -> str:
    return re.sub(r"\s+", "_", short_name.lower())


# Scheme ids are unique within an issuer, slab ids within a scheme
def ensure_unique_ids(issuer: FDIssuer) -> None:
    scheme_ids = set()
    for scheme in issuer.schemes:
        if scheme.scheme_id in scheme_ids:
            raise DuplicateSchemeId(issuer.issuer_key, scheme.scheme_id)
        scheme_ids.add(scheme.scheme_id)

        slab_ids = set()
        for slab in scheme.rate_slabs or []:
            if slab.slab_id in slab_ids:
                raise DuplicateSlabId(issuer.issuer_key, scheme.scheme_id, slab.slab_id)
            slab_ids.add(slab.slab_id)


# Non-cumulative products have no compounding, whatever the request carried
def strip_compounding(scheme: FDScheme) -> FDScheme:
    if not scheme.is_cumulative:
        for slab in scheme.rate_slabs or []:
            slab.compounding_frequency = None
            slab.effective_yield_pa = None
    return scheme


def _merge(model: Type[ModelT], existing: BaseModel, changes: Dict[str, Any]) -> ModelT:
    try:
        return model.model_validate({**existing.model_dump(), **changes})
    except ValidationError as e:
        raise ValidationFailed([
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ])


class FDCatalogService:

    def __init__(self,
                 store: FDIssuerStore,
                 validator: Validator = validate_issuer,
                 key_max_attempts: Optional[int] = None):
        self.store = store
        self.validator = validator
        self.key_max_attempts = key_max_attempts or settings.ISSUER_KEY_MAX_ATTEMPTS
        logger.info("FDCatalogService initialized")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_issuers(self, active_only: bool = True) -> List[FDIssuer]:
        return await self.store.list_issuers(active_only=active_only)

    async def get_issuer(self, issuer_key: str) -> FDIssuer:
        issuer = await self.store.get(issuer_key)
        if issuer is None:
            logger.warning(f"FD issuer {issuer_key} not found")
            raise IssuerNotFound(issuer_key)
        return issuer

    async def list_schemes(self, issuer_key: str, active_only: bool = True) -> List[FDScheme]:
        issuer = await self.get_issuer(issuer_key)
        schemes = issuer.schemes or []
        if active_only:
            schemes = [scheme for scheme in schemes if scheme.is_active]
        return schemes

    async def get_scheme(self, issuer_key: str, scheme_id: str) -> FDScheme:
        issuer = await self.get_issuer(issuer_key)
        scheme = issuer.find_scheme(scheme_id)
        if scheme is None:
            raise SchemeNotFound(issuer_key, scheme_id)
        return scheme

    async def list_slabs(self, issuer_key: str, scheme_id: str) -> List[RateSlab]:
        scheme = await self.get_scheme(issuer_key, scheme_id)
        return list(scheme.rate_slabs or [])

    # Resolves the effective rate for a deposit request without writing anything
    async def resolve_rate(self, request: RateRequest) -> RateResult:
        issuer = await self.get_issuer(request.issuer_key)
        return rate_engine.resolve_rate(
            issuer,
            request.scheme_id,
            request.tenure_months,
            request.payout_frequency,
            is_senior_citizen=request.senior_citizen,
            is_woman=request.women,
            is_renewal=request.renewal,
        )

    # ------------------------------------------------------------------
    # Issuers
    # ------------------------------------------------------------------

    # Returns the supplied key if unused, otherwise derives one from the short name
    async def assign_issuer_key(self, short_name: str, requested_key: Optional[str] = None) -> str:
        if requested_key:
            if await self.store.exists(requested_key):
                raise DuplicateKey(requested_key)
            return requested_key

        base_key = derive_base_key(short_name)
        for attempt in range(self.key_max_attempts):
            candidate = base_key if attempt == 0 else f"{base_key}_{attempt}"
            if not await self.store.exists(candidate):
                return candidate
        logger.error(f"Issuer key generation exhausted for base key '{base_key}'")
        raise KeyGenerationExhausted(base_key, self.key_max_attempts)

    async def create_issuer(self, request: IssuerCreateRequest) -> FDIssuer:
        issuer_key = await self.assign_issuer_key(request.short_name, request.issuer_key)
        logger.info(f"Creating FD issuer {issuer_key}")

        now = datetime.utcnow()
        issuer = FDIssuer(
            issuer_key=issuer_key,
            name=request.name,
            short_name=request.short_name,
            issuer_type=request.issuer_type,
            is_active=True if request.is_active is None else request.is_active,
            schemes=[strip_compounding(scheme.model_copy(deep=True)) for scheme in request.schemes or []],
            revision=0,
            created_at=now,
            updated_at=now,
        )

        ensure_unique_ids(issuer)
        errors = self.validator(issuer)
        if errors:
            logger.warning(f"Create of FD issuer {issuer_key} rejected: {errors}")
            raise ValidationFailed(errors)

        return await self.store.insert(issuer)

    # Shallow-merges top-level fields; schemes are validated only when supplied
    async def update_issuer(self, issuer_key: str, request: IssuerUpdateRequest) -> FDIssuer:
        existing = await self.get_issuer(issuer_key)
        changes = request.model_dump(exclude_unset=True)
        changes.pop("issuer_key", None)

        def change(draft: FDIssuer) -> FDIssuer:
            merged = _merge(FDIssuer, draft, changes)
            if "schemes" in changes:
                for scheme in merged.schemes:
                    strip_compounding(scheme)
            return merged

        mutation = CatalogMutation(existing, "update issuer")
        mutation.modify(change)
        mutation.validate(self.validator, required="schemes" in changes)
        return await mutation.commit(self.store)

    async def delete_issuer(self, issuer_key: str) -> None:
        if not await self.store.delete(issuer_key):
            logger.warning(f"FD issuer {issuer_key} not found for deletion")
            raise IssuerNotFound(issuer_key)

    # ------------------------------------------------------------------
    # Schemes
    # ------------------------------------------------------------------

    def _scheme_index(self, issuer: FDIssuer, scheme_id: str) -> int:
        index = issuer.scheme_index(scheme_id)
        if index is None:
            raise SchemeNotFound(issuer.issuer_key, scheme_id)
        return index

    async def add_scheme(self, issuer_key: str, scheme: FDScheme) -> FDScheme:
        existing = await self.get_issuer(issuer_key)
        if existing.scheme_index(scheme.scheme_id) is not None:
            raise DuplicateSchemeId(issuer_key, scheme.scheme_id)

        new_scheme = strip_compounding(scheme.model_copy(deep=True))
        mutation = CatalogMutation(existing, f"add scheme {scheme.scheme_id}")
        mutation.modify(lambda draft: draft.schemes.append(new_scheme))
        mutation.validate(self.validator)
        await mutation.commit(self.store)
        return new_scheme

    async def update_scheme(self, issuer_key: str, scheme_id: str, request: SchemeUpdateRequest) -> FDScheme:
        existing = await self.get_issuer(issuer_key)
        index = self._scheme_index(existing, scheme_id)

        changes = request.model_dump(exclude_unset=True)
        changes.pop("scheme_id", None)
        updated = strip_compounding(_merge(FDScheme, existing.schemes[index], changes))

        def change(draft: FDIssuer) -> None:
            draft.schemes[index] = updated

        mutation = CatalogMutation(existing, f"update scheme {scheme_id}")
        mutation.modify(change)
        mutation.validate(self.validator)
        await mutation.commit(self.store)
        return updated

    async def delete_scheme(self, issuer_key: str, scheme_id: str) -> None:
        existing = await self.get_issuer(issuer_key)
        self._scheme_index(existing, scheme_id)

        def change(draft: FDIssuer) -> None:
            draft.schemes = [scheme for scheme in draft.schemes if scheme.scheme_id != scheme_id]

        mutation = CatalogMutation(existing, f"delete scheme {scheme_id}")
        mutation.modify(change)
        mutation.validate(self.validator)
        await mutation.commit(self.store)

    # ------------------------------------------------------------------
    # Rate slabs
    # ------------------------------------------------------------------

    def _slab_index(self, issuer: FDIssuer, scheme: FDScheme, slab_id: str) -> int:
        for index, slab in enumerate(scheme.rate_slabs or []):
            if slab.slab_id == slab_id:
                return index
        raise SlabNotFound(issuer.issuer_key, scheme.scheme_id, slab_id)

    @staticmethod
    def _coerce_slab(scheme: FDScheme, slab: RateSlab) -> RateSlab:
        if not scheme.is_cumulative:
            slab.compounding_frequency = None
            slab.effective_yield_pa = None
        return slab

    async def add_slab(self, issuer_key: str, scheme_id: str, slab: RateSlab) -> RateSlab:
        existing = await self.get_issuer(issuer_key)
        scheme_index = self._scheme_index(existing, scheme_id)
        scheme = existing.schemes[scheme_index]
        if any(s.slab_id == slab.slab_id for s in scheme.rate_slabs or []):
            raise DuplicateSlabId(issuer_key, scheme_id, slab.slab_id)

        new_slab = self._coerce_slab(scheme, slab.model_copy(deep=True))

        def change(draft: FDIssuer) -> None:
            target = draft.schemes[scheme_index]
            target.rate_slabs = list(target.rate_slabs or []) + [new_slab]

        mutation = CatalogMutation(existing, f"add slab {slab.slab_id} to scheme {scheme_id}")
        mutation.modify(change)
        mutation.validate(self.validator)
        await mutation.commit(self.store)
        return new_slab

    async def update_slab(self, issuer_key: str, scheme_id: str, slab_id: str, request: SlabUpdateRequest) -> RateSlab:
        existing = await self.get_issuer(issuer_key)
        scheme_index = self._scheme_index(existing, scheme_id)
        scheme = existing.schemes[scheme_index]
        slab_index = self._slab_index(existing, scheme, slab_id)

        changes = request.model_dump(exclude_unset=True)
        changes.pop("slab_id", None)
        updated = self._coerce_slab(scheme, _merge(RateSlab, scheme.rate_slabs[slab_index], changes))

        def change(draft: FDIssuer) -> None:
            draft.schemes[scheme_index].rate_slabs[slab_index] = updated

        mutation = CatalogMutation(existing, f"update slab {slab_id} of scheme {scheme_id}")
        mutation.modify(change)
        mutation.validate(self.validator)
        await mutation.commit(self.store)
        return updated

    async def delete_slab(self, issuer_key: str, scheme_id: str, slab_id: str) -> None:
        existing = await self.get_issuer(issuer_key)
        scheme_index = self._scheme_index(existing, scheme_id)
        self._slab_index(existing, existing.schemes[scheme_index], slab_id)

        def change(draft: FDIssuer) -> None:
            target = draft.schemes[scheme_index]
            target.rate_slabs = [s for s in target.rate_slabs or [] if s.slab_id != slab_id]

        mutation = CatalogMutation(existing, f"delete slab {slab_id} of scheme {scheme_id}")
        mutation.modify(change)
        mutation.validate(self.validator)
        await mutation.commit(self.store)


fd_catalog_service = FDCatalogService(fd_issuer_store)
