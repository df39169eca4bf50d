"""
API tests for the reporting module.
Tests field catalog endpoints, ad-hoc execution, saved report CRUD, runs and XLSX export.
"""

import io

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

CONTACT_REPORT = {
    "name": "Active contacts by company",
    "record_type": "contact",
    "columns": ["first_name", "company_name", "cf:nps_score"],
    "filters": [
        {"field": "status", "operator": "equals", "value": "active"},
        {"field": "email", "operator": "contains", "value": ""},
    ],
    "sort": {"field": "company_name", "direction": "asc"},
}


@pytest.fixture
def saved_report(client: TestClient, api_headers, crm_data):
    response = client.post("/api/reports/", json=CONTACT_REPORT, headers=api_headers)
    assert response.status_code == 201
    return response.json()


class TestFieldCatalog:
    """Record types, operators and fields"""

    def test_record_types(self, client: TestClient):
        response = client.get("/api/reports/record-types")
        assert response.status_code == 200
        assert response.json() == ["contact", "company", "deal", "activity"]

    def test_operators(self, client: TestClient):
        response = client.get("/api/reports/operators")
        assert response.status_code == 200
        operators = response.json()
        assert [op["value"] for op in operators["select"]] == ["is", "is_not"]
        assert {"value": "before", "label": "before"} in operators["date"]

    def test_fields_include_custom_fields(self, client: TestClient, api_headers, crm_data):
        response = client.get("/api/reports/fields/contact", headers=api_headers)
        assert response.status_code == 200

        fields = {field["key"]: field for field in response.json()}
        assert fields["company_name"]["source"] == "join"
        assert fields["cf:nps_score"]["kind"] == "number"
        assert fields["cf:nps_score"]["label"] == "NPS Score"
        assert [op["value"] for op in fields["status"]["operators"]] == ["is", "is_not"]

    def test_custom_fields_are_per_tenant(self, client: TestClient, crm_data):
        response = client.get("/api/reports/fields/contact", headers={"X-Org-Id": "org-2"})
        keys = [field["key"] for field in response.json()]
        assert "cf:nps_score" not in keys

    def test_unknown_record_type(self, client: TestClient):
        response = client.get("/api/reports/fields/invoice")
        assert response.status_code == 422


class TestAdHocExecution:
    def test_execute_scenario(self, client: TestClient, api_headers, crm_data):
        definition = {key: CONTACT_REPORT[key] for key in ("record_type", "columns", "filters", "sort")}

        response = client.post("/api/reports/execute", json=definition, headers=api_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert body["report_id"] is None
        assert [row["company_name"] for row in body["rows"]] == ["Acme", "Zeta"]
        assert [column["label"] for column in body["columns"]] == ["First Name", "Company", "NPS Score"]
        assert body["execution_time_ms"] >= 0

    def test_execute_requires_columns(self, client: TestClient, api_headers):
        response = client.post(
            "/api/reports/execute", json={"record_type": "contact", "columns": []}, headers=api_headers
        )
        assert response.status_code == 422

    def test_execute_rejects_unknown_keys(self, client: TestClient, api_headers):
        response = client.post(
            "/api/reports/execute",
            json={"record_type": "contact", "columns": ["first_name"], "limit": 5},
            headers=api_headers,
        )
        assert response.status_code == 422


class TestReportCRUD:
    """Saved report configuration"""

    def test_create_drops_incomplete_filters(self, saved_report):
        assert saved_report["name"] == "Active contacts by company"
        assert saved_report["org_id"] == "org-1"
        assert saved_report["created_by"] == "tester"
        assert saved_report["filters"] == [{"field": "status", "operator": "equals", "value": "active"}]
        assert saved_report["sort"] == {"field": "company_name", "direction": "asc"}

    def test_get_and_list(self, client: TestClient, api_headers, saved_report):
        response = client.get(f"/api/reports/{saved_report['id']}", headers=api_headers)
        assert response.status_code == 200
        assert response.json()["columns"] == CONTACT_REPORT["columns"]

        response = client.get("/api/reports/", headers=api_headers)
        assert [report["id"] for report in response.json()] == [saved_report["id"]]

    def test_reports_are_tenant_scoped(self, client: TestClient, saved_report):
        other = {"X-Org-Id": "org-2"}
        assert client.get(f"/api/reports/{saved_report['id']}", headers=other).status_code == 404
        assert client.get("/api/reports/", headers=other).json() == []

    def test_update(self, client: TestClient, api_headers, saved_report):
        response = client.patch(
            f"/api/reports/{saved_report['id']}",
            json={"name": "Renamed", "sort": {"field": "first_name", "direction": "desc"}},
            headers=api_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Renamed"
        assert body["sort"]["field"] == "first_name"
        assert body["columns"] == CONTACT_REPORT["columns"]

    def test_update_missing_report(self, client: TestClient, api_headers):
        response = client.patch("/api/reports/999", json={"name": "x"}, headers=api_headers)
        assert response.status_code == 404

    def test_delete(self, client: TestClient, api_headers, saved_report):
        response = client.delete(f"/api/reports/{saved_report['id']}", headers=api_headers)
        assert response.status_code == 200
        assert client.get(f"/api/reports/{saved_report['id']}", headers=api_headers).status_code == 404
        assert client.delete(f"/api/reports/{saved_report['id']}", headers=api_headers).status_code == 404

    def test_create_validation(self, client: TestClient, api_headers):
        response = client.post(
            "/api/reports/", json={**CONTACT_REPORT, "name": "   "}, headers=api_headers
        )
        assert response.status_code == 422


class TestSavedReportRuns:
    def test_run_and_execution_log(self, client: TestClient, api_headers, saved_report):
        response = client.post(f"/api/reports/{saved_report['id']}/run", headers=api_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["report_id"] == saved_report["id"]
        assert [row["first_name"] for row in body["rows"]] == ["Alice", "Bob"]

        response = client.get(f"/api/reports/{saved_report['id']}/executions", headers=api_headers)
        assert response.status_code == 200
        logs = response.json()
        assert len(logs) == 1
        assert logs[0]["success"] is True
        assert logs[0]["row_count"] == 2
        assert logs[0]["executed_by"] == "tester"

        summary = client.get("/api/reports/summary", headers=api_headers).json()
        assert summary[0]["total_executions"] == 1
        assert summary[0]["last_execution_success"] is True

    def test_run_missing_report(self, client: TestClient, api_headers):
        assert client.post("/api/reports/123/run", headers=api_headers).status_code == 404
        assert client.get("/api/reports/123/executions", headers=api_headers).status_code == 404


class TestExport:
    def _sheet(self, response):
        workbook = load_workbook(io.BytesIO(response.content))
        return [list(row) for row in workbook.active.iter_rows(values_only=True)]

    def test_export_full_report(self, client: TestClient, api_headers, saved_report):
        response = client.post(
            f"/api/reports/{saved_report['id']}/export", json={"file_name": "contacts"}, headers=api_headers
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "filename=contacts.xlsx" in response.headers["content-disposition"]
        rows = self._sheet(response)
        assert rows[0] == ["First Name", "Company", "NPS Score"]
        assert rows[1:] == [["Alice", "Acme", "9"], ["Bob", "Zeta", "4"]]

    def test_export_with_viewer_sort_and_selection(self, client: TestClient, api_headers, saved_report):
        response = client.post(
            f"/api/reports/{saved_report['id']}/export",
            json={"sort": {"field": "first_name", "direction": "desc"}, "selected_ids": ["ct-2", "ct-1", "ct-3"]},
            headers=api_headers,
        )

        assert response.status_code == 200
        rows = self._sheet(response)
        assert [row[0] for row in rows[1:]] == ["Bob", "Alice"]

    def test_export_missing_report(self, client: TestClient, api_headers):
        response = client.post("/api/reports/404/export", json={}, headers=api_headers)
        assert response.status_code == 404
