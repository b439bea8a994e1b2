"""
tests/test_api_routers.py

HTTP contract tests using FastAPI's TestClient with the database dependency
pointed at in-memory SQLite.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app.api.routers import insights_router, operations_router, policies_router, policy_upload_router
from app.services.insight_service import InsightService, get_insight_service
from app.services.operation_ledger import OperationLedger, OperationRegistrationError
from app.services.policy_ingestion_service import PolicyIngestionService, get_policy_ingestion_service
from app.services.policy_query_service import PolicyQueryService, get_policy_query_service
from db.session import get_db

HEADER = "policy_number,customer,policy_type,start_date,end_date,premium_usd,status,insured_value_usd"
VALID_CSV = (
    f"{HEADER}\n"
    "P-1,Acme Corp,Property,2024-01-01,2025-01-01,100,active,6000\n"
    "A-1,Globex,Auto,2024-01-01,2025-01-01,200,expired,12000\n"
    "P-2,Initech,Property,2024-01-01,2025-01-01,300,active,3000\n"
).encode("utf-8")


def _build_app(session_factory: sessionmaker[Session], ingestion_service: PolicyIngestionService) -> FastAPI:
    application = FastAPI()
    application.include_router(policy_upload_router)
    application.include_router(policies_router)
    application.include_router(insights_router)
    application.include_router(operations_router)

    def _override_db() -> Iterator[Session]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _override_db
    application.dependency_overrides[get_policy_ingestion_service] = lambda: ingestion_service
    application.dependency_overrides[get_policy_query_service] = lambda: PolicyQueryService()
    application.dependency_overrides[get_insight_service] = lambda: InsightService(adapter=None)
    return application


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    service = PolicyIngestionService(endpoint="/upload", log_row_errors=False)
    with TestClient(_build_app(session_factory, service)) as test_client:
        yield test_client


def _upload(client: TestClient, content: bytes, **headers: str):
    return client.post(
        "/upload",
        files={"file": ("policies.csv", content, "text/csv")},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


def test_upload_reports_accounting(client: TestClient) -> None:
    response = _upload(client, VALID_CSV, **{"X-Correlation-ID": "corr-abc"})

    assert response.status_code == 200
    body = response.json()
    assert body["correlation_id"] == "corr-abc"
    assert body["inserted_count"] == 2
    assert body["rejected_count"] == 1
    assert body["errors"] == [
        {
            "row_number": 3,
            "field": "insured_value_usd",
            "code": "PROPERTY_VALUE_TOO_LOW",
            "message": "Property policies require insured_value_usd >= 5000. Got 3000.",
        }
    ]
    assert "error" not in body


def test_empty_upload_is_400(client: TestClient) -> None:
    response = _upload(client, b"")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Empty file"
    assert (body["inserted_count"], body["rejected_count"], body["errors"]) == (0, 0, [])


def test_missing_file_is_400(client: TestClient) -> None:
    response = client.post("/upload")

    assert response.status_code == 400
    assert response.json()["error"] == "No file uploaded"


def test_registration_failure_is_500(session_factory) -> None:
    class _FailingLedger(OperationLedger):
        def register(self, *, operation_id, endpoint, correlation_id):
            raise OperationRegistrationError(
                operation_id=operation_id,
                correlation_id=correlation_id,
                reason="database down",
            )

    service = PolicyIngestionService(
        endpoint="/upload",
        log_row_errors=False,
        ledger_factory=_FailingLedger,
    )
    with TestClient(_build_app(session_factory, service)) as test_client:
        response = _upload(test_client, VALID_CSV, **{"X-Correlation-ID": "corr-x"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to register operation"
    assert body["correlation_id"] == "corr-x"
    assert (body["inserted_count"], body["rejected_count"], body["errors"]) == (0, 0, [])


def test_operation_is_readable_after_upload(client: TestClient) -> None:
    operation_id = _upload(client, VALID_CSV).json()["operation_id"]

    response = client.get(f"/operations/{operation_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "COMPLETED"
    assert body["rows_inserted"] == 2
    assert body["rows_rejected"] == 1
    assert body["error_summary"] == "1 row(s) rejected"


def test_unknown_operation_is_404(client: TestClient) -> None:
    response = client.get("/operations/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


def test_list_policies_with_filters_and_pagination(client: TestClient) -> None:
    _upload(client, VALID_CSV)

    response = client.get("/policies", params={"status": "expired"})
    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"limit": 25, "offset": 0, "total": 1}
    assert body["items"][0]["policy_number"] == "A-1"
    assert body["items"][0]["insured_value_usd"] == 12000.0

    response = client.get("/policies", params={"limit": 1000, "offset": -3, "q": "acme"})
    assert response.json()["pagination"] == {"limit": 100, "offset": 0, "total": 1}


def test_policies_summary(client: TestClient) -> None:
    _upload(client, VALID_CSV)

    body = client.get("/policies/summary").json()

    assert body["total_policies"] == 2
    assert body["total_premium_usd"] == 300.0
    assert body["count_by_status"] == {"active": 1, "expired": 1}
    assert body["count_by_type"] == {"Property": 1, "Auto": 1}
    assert body["premium_by_type"] == {"Property": 100.0, "Auto": 200.0}


def test_insights_fallback_without_provider(client: TestClient) -> None:
    _upload(client, VALID_CSV)

    response = client.post("/ai/insights", json={"filters": {"policy_type": "Auto"}})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    assert body["highlights"]["total_policies"] == 2
    assert 2 <= len(body["recommendations"]) <= 3


def test_insights_accepts_empty_body(client: TestClient) -> None:
    response = client.post("/ai/insights")

    assert response.status_code == 200
    assert response.json()["insights"] == ["No policies are registered yet."]
