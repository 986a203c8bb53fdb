import pytest
from typing import Dict, List, Optional

from fastapi.testclient import TestClient

from fdcatalog.core.config import settings
from fdcatalog.core.exceptions import ConcurrentModification, DuplicateKey, IssuerNotFound
from fdcatalog.core.security import create_access_token
from fdcatalog.database.models.fd_issuer_model import FDIssuer, FDScheme, RateSlab
from fdcatalog.services.fd_catalog_service import FDCatalogService


class InMemoryIssuerStore:
    """Stands in for FDIssuerStore; keeps plain dicts so no model instance is shared with callers."""

    def __init__(self, issuers: Optional[List[FDIssuer]] = None, enforce_revision: bool = True):
        self.enforce_revision = enforce_revision
        self.documents: Dict[str, dict] = {}
        self.writes = 0
        for issuer in issuers or []:
            self.documents[issuer.issuer_key] = issuer.model_dump()

    async def list_issuers(self, active_only: bool = True) -> List[FDIssuer]:
        return [
            FDIssuer.model_validate(doc)
            for doc in self.documents.values()
            if doc["is_active"] or not active_only
        ]

    async def get(self, issuer_key: str) -> Optional[FDIssuer]:
        doc = self.documents.get(issuer_key)
        return FDIssuer.model_validate(doc) if doc else None

    async def exists(self, issuer_key: str) -> bool:
        return issuer_key in self.documents

    async def insert(self, issuer: FDIssuer) -> FDIssuer:
        if issuer.issuer_key in self.documents:
            raise DuplicateKey(issuer.issuer_key)
        self.documents[issuer.issuer_key] = issuer.model_dump()
        self.writes += 1
        return FDIssuer.model_validate(self.documents[issuer.issuer_key])

    async def replace(self, issuer: FDIssuer, expected_revision: Optional[int] = None) -> FDIssuer:
        current = self.documents.get(issuer.issuer_key)
        if current is None:
            raise IssuerNotFound(issuer.issuer_key)
        if self.enforce_revision and expected_revision is not None and current["revision"] != expected_revision:
            raise ConcurrentModification(issuer.issuer_key, expected_revision)
        self.documents[issuer.issuer_key] = issuer.model_dump()
        self.writes += 1
        return issuer

    async def delete(self, issuer_key: str) -> bool:
        self.writes += 1
        return self.documents.pop(issuer_key, None) is not None

    async def replace_all(self, issuers: List[FDIssuer]) -> int:
        self.documents = {issuer.issuer_key: issuer.model_dump() for issuer in issuers}
        self.writes += 1
        return len(issuers)


def make_cumulative_scheme() -> FDScheme:
    return FDScheme(
        scheme_id="CUM",
        scheme_name="Cumulative Deposit",
        is_cumulative=True,
        payout_frequency_type=["On Maturity"],
        min_tenure_months=12,
        max_tenure_months=60,
        senior_citizen_bonus_bps=50,
        women_bonus_bps=25,
        renewal_bonus_bps=10,
        rate_slabs=[
            RateSlab(slab_id="C1", tenure_min_months=12, tenure_max_months=23,
                     payout_frequency_type="On Maturity", base_interest_rate_pa=7.0,
                     compounding_frequency="Quarterly"),
            RateSlab(slab_id="C2", tenure_min_months=24, tenure_max_months=60,
                     payout_frequency_type="On Maturity", base_interest_rate_pa=7.25,
                     compounding_frequency="Monthly", effective_yield_pa=7.496),
        ],
    )


def make_non_cumulative_scheme() -> FDScheme:
    return FDScheme(
        scheme_id="NC",
        scheme_name="Monthly Income",
        is_cumulative=False,
        payout_frequency_type=["Monthly", "Quarterly"],
        min_tenure_months=12,
        max_tenure_months=60,
        premature_allowed=True,
        premature_terms="1% penalty on the applicable rate",
        senior_citizen_bonus_bps=50,
        women_bonus_bps=25,
        renewal_bonus_bps=0,
        rate_slabs=[
            RateSlab(slab_id="M1", tenure_min_months=12, tenure_max_months=36,
                     payout_frequency_type="Monthly", base_interest_rate_pa=6.5),
            RateSlab(slab_id="Q1", tenure_min_months=12, tenure_max_months=36,
                     payout_frequency_type="Quarterly", base_interest_rate_pa=6.6),
            RateSlab(slab_id="M2", tenure_min_months=37, tenure_max_months=60,
                     payout_frequency_type="Monthly", base_interest_rate_pa=6.75),
        ],
    )


def make_issuer(issuer_key: str = "shriram_finance", **overrides) -> FDIssuer:
    data = dict(
        issuer_key=issuer_key,
        name="Shriram Finance Ltd",
        short_name="Shriram Finance",
        issuer_type="NBFC",
        schemes=[make_cumulative_scheme(), make_non_cumulative_scheme()],
    )
    data.update(overrides)
    return FDIssuer(**data)


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET_KEY", "test-secret-key")
    monkeypatch.setattr(settings, "ADMIN_ROLE", "admin")


@pytest.fixture(autouse=True)
def audit_calls(monkeypatch):
    """Captures audit writes instead of inserting AuditLog documents."""
    calls = []

    async def fake_create_audit(**kwargs):
        calls.append(kwargs)

    import fdcatalog.services.audit_service as audit_module
    monkeypatch.setattr(audit_module.audit_service, "create_audit", fake_create_audit)
    return calls


@pytest.fixture
def issuer() -> FDIssuer:
    return make_issuer()


@pytest.fixture
def store(issuer) -> InMemoryIssuerStore:
    return InMemoryIssuerStore([issuer])


@pytest.fixture
def service(store) -> FDCatalogService:
    return FDCatalogService(store, key_max_attempts=100)


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    token = create_access_token({"sub": "admin@branch.example", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers() -> Dict[str, str]:
    token = create_access_token({"sub": "teller@branch.example", "role": "user"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(service):
    from main import app
    from fdcatalog.api.fd_scheme_routes import get_fd_catalog_service

    app.dependency_overrides[get_fd_catalog_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides = {}
