"""
API tests for the sales import and entry routes.

Services run on the in-memory store wired up by the test_client fixture.
"""

import pandas as pd
import pytest

BASE = "/api/sales/import"


@pytest.fixture
def csv_upload():
    frame = pd.DataFrame({
        "Shipper": ["HMSI", "", "Acme"],
        "Revenue": ["₹2,13,00,000", "100", "0"],
        "Profit %": ["16%", "10", "5"],
    })
    return {"file": ("sales.csv", frame.to_csv(index=False).encode("utf-8"), "text/csv")}


@pytest.fixture
def session_id(test_client, auth_headers):
    response = test_client.post(
        f"{BASE}/sessions",
        json={"periodKey": "Q1-FY2025-2026", "rowType": "actual"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["sessionId"]


# ===================
# AUTH
# ===================

class TestAuth:
    """Role guard on import and entry routes."""

    def test_missing_identity(self, test_client):
        response = test_client.post(f"{BASE}/sessions", json={"periodKey": "Q1"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_wrong_role(self, test_client):
        response = test_client.get(
            "/api/sales/entries",
            headers={"X-User-Id": "user-9", "X-User-Role": "viewer"},
        )
        assert response.status_code == 401

    def test_fields_are_public(self, test_client):
        response = test_client.get(f"{BASE}/fields")

        assert response.status_code == 200
        fields = response.json()
        assert [f["key"] for f in fields] == [
            "shipperName", "teuQty", "revenueInCurrency", "profitabilityRatio", "notes",
        ]
        assert fields[0]["displayLabel"] == "Shipper / Client Name"
        assert fields[0]["required"] is True


# ===================
# ONE-SHOT COMMIT
# ===================

class TestOneShotCommit:
    """POST /api/sales/import."""

    def test_commit_contract(self, test_client, auth_headers):
        response = test_client.post(
            BASE,
            json={
                "periodKey": "Q1-FY2025-2026",
                "rowType": "actual",
                "rows": [
                    {"shipperName": "HMSI", "revenueInCurrency": 21300000, "profitabilityRatio": 0.16},
                    {"shipperName": "", "revenueInCurrency": 100, "profitabilityRatio": 0.1,
                     "hasError": True, "errorReasons": ["Missing shipper name"]},
                ],
            },
            headers=auth_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Import complete"
        assert body["imported"] == 1
        assert body["skipped"] == 1
        assert body["skippedDetails"] == [{"row": 2, "reason": "Missing shipper name"}]
        assert body["total"] == 2

    def test_empty_rows_rejected(self, test_client, auth_headers):
        response = test_client.post(
            BASE,
            json={"periodKey": "Q1-FY2025-2026", "rows": []},
            headers=auth_headers,
        )
        assert response.status_code == 422

    def test_non_finite_amount_rejected_before_anything_is_stored(
        self, test_client, auth_headers, group_store
    ):
        body = (
            '{"periodKey": "Q1-FY2025-2026", "rowType": "actual", "rows": ['
            '{"shipperName": "A", "revenueInCurrency": 100, "profitabilityRatio": 0.1},'
            '{"shipperName": "B", "revenueInCurrency": Infinity, "profitabilityRatio": 0.1},'
            '{"shipperName": "C", "revenueInCurrency": 100, "profitabilityRatio": NaN}]}'
        )

        response = test_client.post(
            BASE,
            content=body,
            headers={**auth_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        locs = [e["loc"] for e in error["details"]["errors"]]
        assert ["body", "rows", 1, "revenueInCurrency"] in locs
        assert ["body", "rows", 2, "profitabilityRatio"] in locs
        assert group_store.items == {}


# ===================
# WIZARD
# ===================

class TestWizardFlow:
    """Walk a session from upload to done."""

    def test_full_flow(self, test_client, auth_headers, session_id, csv_upload):
        url = f"{BASE}/sessions/{session_id}"

        uploaded = test_client.post(f"{url}/upload", files=csv_upload, headers=auth_headers)
        assert uploaded.status_code == 200
        assert uploaded.json()["state"] == "mapping"
        assert uploaded.json()["mapping"]["shipperName"] == "Shipper"
        assert "rawRows" not in uploaded.json()

        applied = test_client.post(f"{url}/apply-mapping", headers=auth_headers)
        assert applied.json()["state"] == "validation"
        assert applied.json()["invalidCount"] == 2

        edited = test_client.patch(
            f"{url}/rows/2",
            json={"field": "shipperName", "value": "Maersk"},
            headers=auth_headers,
        )
        assert edited.json()["validCount"] == 2

        removed = test_client.delete(f"{url}/rows/3", headers=auth_headers)
        assert [r["originalRowNumber"] for r in removed.json()["rows"]] == [1, 2]

        committed = test_client.post(f"{url}/commit", headers=auth_headers)
        assert committed.status_code == 200
        assert committed.json()["state"] == "done"
        assert committed.json()["report"]["importedCount"] == 2

        finished = test_client.post(f"{url}/finish", headers=auth_headers)
        assert finished.json()["redirectTo"] == "/dashboard/sales"
        assert finished.json()["report"]["sequenceNumbers"] == [1, 2]

        reset = test_client.post(f"{url}/reset", headers=auth_headers)
        assert reset.json()["state"] == "upload"

    def test_mapping_error(self, test_client, auth_headers, session_id, csv_upload):
        url = f"{BASE}/sessions/{session_id}"
        test_client.post(f"{url}/upload", files=csv_upload, headers=auth_headers)
        test_client.put(
            f"{url}/mapping",
            json={"mapping": {"profitabilityRatio": None}},
            headers=auth_headers,
        )

        response = test_client.post(f"{url}/apply-mapping", headers=auth_headers)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "MAPPING_ERROR"
        assert error["details"]["missing_fields"] == ["Profitability %"]

    def test_unsupported_upload(self, test_client, auth_headers, session_id):
        response = test_client.post(
            f"{BASE}/sessions/{session_id}/upload",
            files={"file": ("sales.pdf", b"%PDF-1.4", "application/pdf")},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EXTRACTION_ERROR"

    def test_commit_out_of_order(self, test_client, auth_headers, session_id):
        response = test_client.post(f"{BASE}/sessions/{session_id}/commit", headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_WIZARD_TRANSITION"

    def test_back_from_mapping(self, test_client, auth_headers, session_id, csv_upload):
        url = f"{BASE}/sessions/{session_id}"
        test_client.post(f"{url}/upload", files=csv_upload, headers=auth_headers)

        response = test_client.post(f"{url}/back", headers=auth_headers)
        assert response.json()["state"] == "upload"

    def test_unknown_session(self, test_client, auth_headers):
        response = test_client.get(f"{BASE}/sessions/nope", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IMPORT_SESSION_NOT_FOUND"

    def test_session_is_private(self, test_client, session_id):
        response = test_client.get(
            f"{BASE}/sessions/{session_id}",
            headers={"X-User-Id": "user-2", "X-User-Role": "sales_manager"},
        )
        assert response.status_code == 404

    def test_discard(self, test_client, auth_headers, session_id):
        response = test_client.delete(f"{BASE}/sessions/{session_id}", headers=auth_headers)
        assert response.status_code == 204

        response = test_client.get(f"{BASE}/sessions/{session_id}", headers=auth_headers)
        assert response.status_code == 404


# ===================
# ENTRIES
# ===================

class TestEntries:
    """Manual entry endpoints."""

    def test_create_list_update_delete(self, test_client, auth_headers):
        created = test_client.post(
            "/api/sales/entries",
            json={
                "periodKey": "Q1-FY2025-2026",
                "shipperName": "HMSI",
                "periodLabel": "Jul-Sep 2025",
                "teuQty": "40",
                "revenueInCurrency": 213000,
                "profitabilityRatio": 0.16,
            },
            headers=auth_headers,
        )
        assert created.status_code == 201
        item_id = created.json()["id"]
        assert created.json()["sequenceNumber"] == 1

        listed = test_client.get(
            "/api/sales/entries",
            params={"periodKey": "Q1-FY2025-2026"},
            headers=auth_headers,
        )
        assert listed.json()[0]["revenueDisplay"] == "₹ 2.1 L"

        updated = test_client.patch(
            f"/api/sales/entries/{item_id}",
            json={"profitabilityRatio": 0.5},
            headers=auth_headers,
        )
        assert updated.json()["profitMinorUnits"] == 10650000

        deleted = test_client.delete(f"/api/sales/entries/{item_id}", headers=auth_headers)
        assert deleted.status_code == 204

        missing = test_client.delete(f"/api/sales/entries/{item_id}", headers=auth_headers)
        assert missing.status_code == 404
