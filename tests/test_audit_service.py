import pytest
from datetime import datetime
from types import SimpleNamespace


class FakeQuery:
    def __init__(self, docs):
        self._docs = docs
        self.calls = []

    async def count(self):
        return len(self._docs)

    def sort(self, *args):
        self.calls.append(("sort", args))
        return self

    def skip(self, n):
        self.calls.append(("skip", n))
        return self

    def limit(self, n):
        self.calls.append(("limit", n))
        return self

    async def to_list(self):
        return self._docs


@pytest.mark.asyncio
async def test_get_audits_builds_query_and_serializes(monkeypatch):
    docs = [SimpleNamespace(id="abc123", action="fd_slab.update", actor="admin@branch.example",
                            acted="shriram_finance/NC/M1", timestamp=datetime(2026, 1, 5, 10, 30),
                            status="successful", detail=None)]
    queries = []

    def fake_find(query):
        queries.append(query)
        return FakeQuery(docs)

    import fdcatalog.services.audit_service as audit_module
    monkeypatch.setattr(audit_module.AuditLog, "find", staticmethod(fake_find))

    result = await audit_module.AuditService().get_audits(
        skip=10,
        limit=5,
        filters={"issuer_key": "shriram_finance", "entity": "fd_slab", "start_date": datetime(2026, 1, 1)},
    )

    assert queries[0] == {
        "acted": {"$regex": "^shriram_finance(/|$)"},
        "action": {"$regex": "^fd_slab\\."},
        "timestamp": {"$gte": datetime(2026, 1, 1)},
    }
    assert result["total"] == 1
    assert result["skip"] == 10 and result["limit"] == 5
    assert result["data"][0]["acted"] == "shriram_finance/NC/M1"
    assert result["data"][0]["timestamp"] == "2026-01-05T10:30:00"


@pytest.mark.asyncio
async def test_record_swallows_audit_write_failures(monkeypatch, caplog):
    import fdcatalog.services.audit_service as audit_module
    service = audit_module.AuditService()

    async def broken_create_audit(**kwargs):
        raise RuntimeError("mongo unavailable")

    monkeypatch.setattr(service, "create_audit", broken_create_audit)

    await service.record(action="fd_issuer.delete", actor="admin", acted="shriram_finance")

    assert "Failed to write audit log for fd_issuer.delete" in caplog.text


def test_audits_route_is_admin_only(client, user_headers):
    resp = client.get("/audits/", headers=user_headers)

    assert resp.status_code == 403


def test_audits_route_rejects_bad_date(client, admin_headers):
    resp = client.get("/audits/?start_date=05-01-2026", headers=admin_headers)

    assert resp.status_code == 400
    assert "start_date" in resp.json()["error"]["message"]


@pytest.mark.parametrize("filters, acted_pattern", [
    ({"issuer_key": "shriram_finance"}, "^shriram_finance(/|$)"),
    ({"issuer_key": "shriram_finance", "scheme_id": "NC"}, "^shriram_finance/NC(/|$)"),
    ({"issuer_key": "shriram_finance", "scheme_id": "NC", "slab_id": "M1"}, "^shriram_finance/NC/M1(/|$)"),
])
def test_audit_query_selects_catalog_subtree(filters, acted_pattern):
    import re
    from fdcatalog.services.audit_service import build_audit_query

    pattern = build_audit_query(**filters)["acted"]["$regex"]

    assert pattern == acted_pattern
    assert re.match(pattern, catalog_target(filters))
    assert re.match(pattern, catalog_target(filters) + "/X1")
    assert not re.match(pattern, catalog_target(filters) + "_2")


def catalog_target(filters):
    return "/".join(filters[k] for k in ("issuer_key", "scheme_id", "slab_id") if k in filters)


def test_audit_query_escapes_key_and_bounds_end_date():
    from fdcatalog.services.audit_service import build_audit_query

    query = build_audit_query(issuer_key="a.b", status="failed", end_date=datetime(2026, 1, 31, 23, 59))

    assert query == {
        "acted": {"$regex": "^a\\.b(/|$)"},
        "status": "failed",
        "timestamp": {"$lte": datetime(2026, 1, 31, 23, 59)},
    }


def test_audit_query_without_filters_matches_everything():
    from fdcatalog.services.audit_service import build_audit_query

    assert build_audit_query() == {}


def test_audits_route_requires_issuer_for_scheme_filter(client, admin_headers):
    resp = client.get("/audits/?scheme_id=NC", headers=admin_headers)

    assert resp.status_code == 400
    assert "issuer_key" in resp.json()["error"]["message"]


def test_audits_route_passes_catalog_filters(client, admin_headers, monkeypatch):
    import fdcatalog.services.audit_service as audit_module
    seen = {}

    async def fake_get_audits(skip=0, limit=50, filters=None):
        seen.update(filters)
        return {"data": [], "total": 0, "skip": skip, "limit": limit}

    monkeypatch.setattr(audit_module.audit_service, "get_audits", fake_get_audits)

    resp = client.get("/audits/?issuer_key=shriram_finance&scheme_id=NC&entity=fd_slab&end_date=2026-01-31",
                      headers=admin_headers)

    assert resp.status_code == 200
    assert seen["issuer_key"] == "shriram_finance"
    assert seen["scheme_id"] == "NC"
    assert seen["entity"] == "fd_slab"
    assert seen["end_date"] == datetime(2026, 1, 31, 23, 59, 59, 999999)
    assert seen["start_date"] is None
