"""Integration tests for the /fx-deals endpoints."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from fxdeals.api.main import app
from fxdeals.db.database import StorageUnavailableError, count_deals

client = TestClient(app)

VALID_PAYLOAD = {
    "deal_id": "D1",
    "from_currency": "USD",
    "to_currency": "EUR",
    "timestamp": "2024-01-01T10:00:00",
    "amount": 100.00,
}


def payload(**overrides) -> dict:
    return {**VALID_PAYLOAD, **overrides}


@pytest.fixture(autouse=True)
def db_path(tmp_path, monkeypatch):
    p = tmp_path / "api.db"
    monkeypatch.setenv("FXDEALS_DB_PATH", str(p))
    return p


# ---------------------------------------------------------------------------
# POST /fx-deals
# ---------------------------------------------------------------------------


class TestImportDealEndpoint:
    def test_valid_deal_returns_201(self):
        resp = client.post("/fx-deals", json=VALID_PAYLOAD)
        assert resp.status_code == 201

    def test_response_shape(self):
        body = client.post("/fx-deals", json=VALID_PAYLOAD).json()
        assert body["deal_id"] == "D1"
        assert body["from_currency"] == "USD"
        assert body["to_currency"] == "EUR"
        assert body["timestamp"] == "2024-01-01T10:00:00"
        assert body["amount"] == "100.0000"
        assert "created_at" in body
        assert "id" in body

    def test_imported_deal_retrievable(self):
        created = client.post("/fx-deals", json=VALID_PAYLOAD).json()
        resp = client.get("/fx-deals/D1")
        assert resp.status_code == 200
        assert resp.json() == created

    def test_duplicate_returns_409(self, db_path):
        client.post("/fx-deals", json=VALID_PAYLOAD)
        resp = client.post("/fx-deals", json=VALID_PAYLOAD)
        assert resp.status_code == 409
        body = resp.json()
        assert body["type"] == "urn:fxdeals:error:duplicate"
        assert body["title"] == "Duplicate Deal"
        assert "D1" in body["detail"]
        assert count_deals(db_path) == 1

    def test_same_currency_returns_400_business_rule(self):
        resp = client.post("/fx-deals", json=payload(deal_id="D2", to_currency="USD"))
        assert resp.status_code == 400
        body = resp.json()
        assert body["type"] == "urn:fxdeals:error:business-rule"
        assert body["detail"] == "From and To currencies must be different for an FX deal"
        assert "errors" not in body

    def test_unknown_currency_returns_400(self):
        resp = client.post("/fx-deals", json=payload(from_currency="ABC"))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid ISO currency code provided"

    def test_future_timestamp_returns_400(self):
        resp = client.post("/fx-deals", json=payload(timestamp="2999-01-01T00:00:00"))
        assert resp.status_code == 400
        assert resp.json()["type"] == "urn:fxdeals:error:business-rule"

    def test_non_positive_amount_returns_400(self):
        resp = client.post("/fx-deals", json=payload(amount=0))
        assert resp.status_code == 400
        assert resp.json()["type"] == "urn:fxdeals:error:business-rule"


# ---------------------------------------------------------------------------
# RFC 7807 validation responses
# ---------------------------------------------------------------------------


class TestImportDealValidation:
    def test_empty_body_lists_all_fields(self):
        resp = client.post("/fx-deals", json={})
        assert resp.status_code == 400
        body = resp.json()
        assert body["type"] == "urn:fxdeals:error:validation"
        assert body["title"] == "Validation Failed"
        assert body["status"] == 400
        fields = {e["field"] for e in body["errors"]}
        assert fields == {"deal_id", "from_currency", "to_currency", "timestamp", "amount"}

    def test_malformed_currency(self):
        resp = client.post("/fx-deals", json=payload(from_currency="usd"))
        assert resp.status_code == 400
        assert any(e["field"] == "from_currency" for e in resp.json()["errors"])

    def test_deal_id_too_long(self):
        resp = client.post("/fx-deals", json=payload(deal_id="X" * 101))
        assert resp.status_code == 400

    def test_amount_precision(self):
        resp = client.post("/fx-deals", json=payload(amount="1.123456"))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "amount"

    def test_nothing_persisted_on_validation_error(self, db_path):
        client.post("/fx-deals", json={})
        client.post("/fx-deals", json=payload(to_currency="EUROS"))
        assert client.get("/fx-deals").json()["total_elements"] == 0


# ---------------------------------------------------------------------------
# POST /fx-deals/batch
# ---------------------------------------------------------------------------


class TestBatchEndpoint:
    def test_mixed_batch_returns_207(self, db_path):
        client.post("/fx-deals", json=VALID_PAYLOAD)
        resp = client.post(
            "/fx-deals/batch",
            json=[
                payload(deal_id="D3"),
                payload(deal_id="D1"),
                payload(deal_id="D4", to_currency="QQQ"),
            ],
        )
        assert resp.status_code == 207
        body = resp.json()
        assert body["total_received"] == 3
        assert body["success_count"] == 1
        assert body["failure_count"] == 2
        assert [r["success"] for r in body["results"]] == [True, False, False]
        assert [r["error_type"] for r in body["results"]] == [
            None,
            "duplicate",
            "business_rule",
        ]
        assert body["results"][0]["data"]["deal_id"] == "D3"
        assert count_deals(db_path) == 2

    def test_malformed_item_does_not_fail_batch(self):
        resp = client.post(
            "/fx-deals/batch",
            json=[payload(deal_id="B1"), {"deal_id": "B2", "amount": "x"}, "junk"],
        )
        assert resp.status_code == 207
        results = resp.json()["results"]
        assert results[0]["success"] is True
        assert results[1]["error_type"] == "validation"
        assert results[1]["deal_id"] == "B2"
        assert any(e["field"] == "amount" for e in results[1]["errors"])
        assert results[2]["error_type"] == "validation"
        assert results[2]["deal_id"] is None

    def test_non_list_body_rejected(self):
        resp = client.post("/fx-deals/batch", json=VALID_PAYLOAD)
        assert resp.status_code == 400
        assert resp.json()["type"] == "urn:fxdeals:error:validation"

    def test_empty_batch(self):
        resp = client.post("/fx-deals/batch", json=[])
        assert resp.status_code == 207
        assert resp.json()["total_received"] == 0


# ---------------------------------------------------------------------------
# GET /fx-deals and /fx-deals/{deal_id}
# ---------------------------------------------------------------------------


class TestRetrievalEndpoints:
    def test_not_found_returns_404(self):
        resp = client.get("/fx-deals/NONEXISTENT")
        assert resp.status_code == 404
        body = resp.json()
        assert body["type"] == "urn:fxdeals:error:not-found"
        assert "NONEXISTENT" in body["detail"]

    def test_list_defaults(self):
        client.post("/fx-deals/batch", json=[payload(deal_id=f"L{i}") for i in range(3)])
        body = client.get("/fx-deals").json()
        assert body["page"] == 0
        assert body["size"] == 20
        assert body["sort_by"] == "created_at"
        assert body["sort_dir"] == "desc"
        assert body["total_elements"] == 3
        assert body["total_pages"] == 1
        assert [d["deal_id"] for d in body["items"]] == ["L2", "L1", "L0"]

    def test_list_paging_and_sort(self):
        client.post("/fx-deals/batch", json=[payload(deal_id=f"L{i}") for i in range(5)])
        resp = client.get(
            "/fx-deals", params={"page": 1, "size": 2, "sort_by": "deal_id", "sort_dir": "asc"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert [d["deal_id"] for d in body["items"]] == ["L2", "L3"]
        assert body["total_pages"] == 3

    def test_list_unknown_sort_field(self):
        resp = client.get("/fx-deals", params={"sort_by": "nope"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "sort_by"

    def test_list_size_too_large(self):
        resp = client.get("/fx-deals", params={"size": 1000})
        assert resp.status_code == 400

    def test_list_non_integer_page(self):
        resp = client.get("/fx-deals", params={"page": "first"})
        assert resp.status_code == 400

    def test_list_huge_page_is_rejected(self):
        resp = client.get("/fx-deals", params={"page": 10**20})
        assert resp.status_code == 400
        body = resp.json()
        assert body["type"] == "urn:fxdeals:error:validation"
        assert body["errors"][0]["field"] == "page"


# ---------------------------------------------------------------------------
# Infrastructure failures
# ---------------------------------------------------------------------------


class TestServerErrors:
    def test_storage_unavailable_returns_503(self):
        with patch(
            "fxdeals.importer.service.get_deal",
            side_effect=StorageUnavailableError("database is locked"),
        ):
            resp = client.get("/fx-deals/D1")
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "5"
        assert "locked" not in resp.json()["detail"]

    def test_unexpected_error_returns_generic_500(self):
        safe_client = TestClient(app, raise_server_exceptions=False)
        with patch(
            "fxdeals.importer.service.get_deal",
            side_effect=RuntimeError("secret internals"),
        ):
            resp = safe_client.get("/fx-deals/D1")
        assert resp.status_code == 500
        body = resp.json()
        assert body["title"] == "Internal Server Error"
        assert "secret internals" not in body["detail"]


# ---------------------------------------------------------------------------
# Seed and health
# ---------------------------------------------------------------------------


class TestSeedEndpoint:
    def test_seed_imports_samples(self):
        resp = client.post("/seed")
        assert resp.status_code == 201
        assert resp.json()["success_count"] == 5
        assert client.get("/fx-deals/SAMPLE-001").status_code == 200

    def test_reseed_reports_duplicates(self):
        client.post("/seed")
        body = client.post("/seed").json()
        assert body["success_count"] == 0
        assert body["failure_count"] == 5


class TestHealthEndpoint:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "service": "FX Deals Warehouse"}
