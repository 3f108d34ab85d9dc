"""
API Tests.

End-to-end checks of the v1 routes: scope resolution, role guards, the
error envelope and decimal serialization.
"""

import pytest
from jose import jwt
from sqlalchemy.exc import SQLAlchemyError

from housing_ledger.app.core.config import settings
from housing_ledger.app.core.exceptions import ConcurrencyConflict
from housing_ledger.app.domain.pool_fund.contribution_engine import MonthlyContributionEngine
from housing_ledger.app.domain.pool_fund.ledger_store import LedgerStore
from housing_ledger.app.models.enums import UserRole


async def _post_entry(client, headers, client_id, kind, amount, county):
    tx = await client.post(
        "/v1/transactions",
        json={
            "type": "pool_fund_deposit" if kind == "deposit" else "pool_fund_withdrawal",
            "amount": amount,
            "description": f"{kind} {amount}",
            "client_id": client_id,
        },
        headers=headers,
    )
    assert tx.status_code == 201, tx.text
    entry = await client.post(
        "/v1/pool-fund",
        json={
            "transaction_id": tx.json()["id"],
            "amount": amount,
            "kind": kind,
            "description": f"{kind} {amount}",
            "county": county,
        },
        headers=headers,
    )
    assert entry.status_code == 201, entry.text
    return entry.json()


def _contribution(client_id, month="2024-01", **overrides):
    body = {
        "client_id": client_id,
        "month": month,
        "rent_amount": "1100.00",
        "subsidy_award": "1220.00",
        "subsidy_received": "1220.00",
        "client_obligation": "330.00",
        "admin_fee": "61.00",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_health_and_root(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers

    response = await client.get("/")
    assert response.json()["health"] == "/health"


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client):
    response = await client.get("/v1/pool-fund/balance")
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_bad_tokens_use_authentication_error(client):
    response = await client.get("/v1/pool-fund/balance", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"

    no_user = jwt.encode({"sub": "ghost", "role": "STAFF"}, settings.secret_key, algorithm=settings.algorithm)
    response = await client.get("/v1/pool-fund/balance", headers={"Authorization": f"Bearer {no_user}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token payload"


@pytest.mark.asyncio
async def test_balances_are_exact_decimal_strings(client, tenants, auth_headers):
    headers = auth_headers(company_id=tenants.company_a)
    await _post_entry(client, headers, tenants.client_a, "deposit", "500.00", "A")
    await _post_entry(client, headers, tenants.client_a, "withdrawal", "150.00", "A")
    await _post_entry(client, headers, tenants.client_a, "deposit", "300.00", "B")

    response = await client.get("/v1/pool-fund/balance", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"balance": "650.00", "scope": f"company:{tenants.company_a}", "county": None}

    response = await client.get("/v1/pool-fund/balance/county/A", headers=headers)
    assert response.json()["balance"] == "350.00"

    summary = (await client.get("/v1/pool-fund/summary", headers=headers)).json()
    assert [row["county"] for row in summary] == ["A", "B"]
    assert summary[0]["total_withdrawals"] == "150.00"

    entries = (await client.get("/v1/pool-fund", params={"county": "A"}, headers=headers)).json()
    assert [e["amount"] for e in entries] == ["150.00", "500.00"]


@pytest.mark.asyncio
async def test_other_tenant_sees_nothing(client, tenants, auth_headers):
    await _post_entry(client, auth_headers(company_id=tenants.company_a), tenants.client_a, "deposit", "500.00", "A")

    response = await client.get("/v1/pool-fund/balance", headers=auth_headers(company_id=tenants.company_b, user_id=2))
    assert response.json()["balance"] == "0.00"


@pytest.mark.asyncio
async def test_tenant_cannot_request_other_company(client, tenants, auth_headers):
    headers = auth_headers(company_id=tenants.company_a)

    response = await client.get(
        "/v1/pool-fund/balance", params={"company_id": tenants.company_b}, headers=headers
    )
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_SCOPE_001"

    response = await client.get("/v1/pool-fund/balance", params={"system_wide": "true"}, headers=headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_must_choose_scope(client, tenants, auth_headers):
    tenant_headers = auth_headers(company_id=tenants.company_a)
    await _post_entry(client, tenant_headers, tenants.client_a, "deposit", "500.00", "A")
    await _post_entry(
        client, auth_headers(company_id=tenants.company_b, user_id=2), tenants.client_b, "deposit", "70.00", "B"
    )
    admin = auth_headers(role=UserRole.ADMIN, user_id=99)

    response = await client.get("/v1/pool-fund/balance", headers=admin)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"

    response = await client.get("/v1/pool-fund/balance", params={"system_wide": "true"}, headers=admin)
    assert response.json() == {"balance": "570.00", "scope": "system-wide:user99", "county": None}

    response = await client.get("/v1/pool-fund/balance", params={"company_id": tenants.company_b}, headers=admin)
    assert response.json()["balance"] == "70.00"


@pytest.mark.asyncio
async def test_entry_with_sub_cent_amount_rejected(client, tenants, auth_headers):
    headers = auth_headers(company_id=tenants.company_a)
    tx = await client.post(
        "/v1/transactions",
        json={"type": "misc", "amount": "1.00", "description": "fee", "client_id": tenants.client_a},
        headers=headers,
    )

    response = await client.post(
        "/v1/pool-fund",
        json={
            "transaction_id": tx.json()["id"],
            "amount": "10.005",
            "kind": "deposit",
            "description": "too precise",
            "county": "A",
        },
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["details"] == {"field": "amount"}


@pytest.mark.asyncio
async def test_malformed_body_uses_error_envelope(client, tenants, auth_headers):
    response = await client.post(
        "/v1/pool-fund", json={"amount": "1.00"}, headers=auth_headers(company_id=tenants.company_a)
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_oversized_amount_is_a_validation_error(client, tenants, auth_headers):
    response = await client.post(
        "/v1/transactions",
        json={"type": "misc", "amount": "1E+30", "description": "typo", "client_id": tenants.client_a},
        headers=auth_headers(company_id=tenants.company_a),
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    assert response.json()["details"] == {"field": "amount"}


@pytest.mark.asyncio
async def test_approval_cascade(client, tenants, auth_headers):
    headers = auth_headers(company_id=tenants.company_a)

    response = await client.post(
        f"/v1/applications/{tenants.application_a}/approve",
        json={"county_reimbursement": "1000.00"},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["application"]["status"] == "approved"
    assert body["cascade_triggered"] is True
    assert body["surplus"] == "100.00"
    assert body["transaction"]["type"] == "county_reimbursement"
    assert body["deposit_entry"]["amount"] == "100.00"
    assert body["deposit_entry"]["county"] == "A"

    # Same value again changes nothing
    response = await client.post(
        f"/v1/applications/{tenants.application_a}/approve",
        json={"county_reimbursement": "1000.00"},
        headers=headers,
    )
    assert response.json()["cascade_triggered"] is False

    balance = await client.get("/v1/pool-fund/balance", headers=headers)
    assert balance.json()["balance"] == "100.00"


@pytest.mark.asyncio
async def test_failed_cascade_then_dlq_retry(client, tenants, auth_headers, mocker):
    headers = auth_headers(company_id=tenants.company_a)
    admin = auth_headers(role=UserRole.ADMIN, user_id=99)
    mocker.patch.object(LedgerStore, "append_entry", side_effect=SQLAlchemyError("connection reset"))

    response = await client.post(
        f"/v1/applications/{tenants.application_a}/approve",
        json={"county_reimbursement": "1000.00"},
        headers=headers,
    )
    assert response.status_code == 500
    body = response.json()
    assert body["error_code"] == "ERR_CASCADE_001"
    assert body["details"]["completed_steps"] == ["reimbursement_transaction"]
    assert body["details"]["failed_step"] == "surplus_deposit"
    assert body["details"]["rolled_back"] is True
    dead_letter_id = body["details"]["dead_letter_id"]

    transactions = await client.get("/v1/transactions", headers=headers)
    assert transactions.json() == []

    items = (await client.get("/v1/admin/ops/dlq", params={"status": "FAILED"}, headers=admin)).json()
    assert [item["id"] for item in items] == [dead_letter_id]

    mocker.stopall()
    response = await client.post(f"/v1/admin/ops/dlq/{dead_letter_id}/retry", headers=admin)
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "PROCESSED"

    balance = await client.get("/v1/pool-fund/balance", headers=headers)
    assert balance.json()["balance"] == "100.00"


@pytest.mark.asyncio
async def test_dlq_requires_admin(client, tenants, auth_headers):
    response = await client.get("/v1/admin/ops/dlq", headers=auth_headers(company_id=tenants.company_a))
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_housing_support_flow(client, tenants, auth_headers):
    headers = auth_headers(company_id=tenants.company_a)

    first = await client.post("/v1/housing-support", json=_contribution(tenants.client_a), headers=headers)
    assert first.status_code == 201, first.text
    assert first.json()["month_pool_total"] == "389.00"
    assert first.json()["running_pool_total"] == "389.00"

    second = await client.post(
        "/v1/housing-support",
        json=_contribution(tenants.client_a, "2024-02", subsidy_received="0", client_obligation="0", rent_amount="0", admin_fee="50.00"),
        headers=headers,
    )
    assert second.json()["running_pool_total"] == "339.00"

    updated = await client.put(
        f"/v1/housing-support/{first.json()['id']}", json={"admin_fee": "0"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["month_pool_total"] == "450.00"
    assert updated.json()["running_pool_total"] == "389.00"

    month = await client.get("/v1/housing-support/pool-total/month/2024-01", headers=headers)
    assert month.json()["total"] == "450.00"
    running = await client.get("/v1/housing-support/pool-total/running", headers=headers)
    assert running.json()["total"] == "400.00"

    audit = (await client.get("/v1/housing-support/running-total-audit", headers=headers)).json()
    assert [(row["stored"], row["expected"]) for row in audit] == [("389.00", "450.00"), ("339.00", "400.00")]

    listed = (await client.get("/v1/housing-support", params={"month": "2024-02"}, headers=headers)).json()
    assert [row["id"] for row in listed] == [second.json()["id"]]


@pytest.mark.asyncio
async def test_housing_support_retries_conflicts(client, tenants, auth_headers, mocker):
    original = MonthlyContributionEngine.create_record
    attempts = []

    async def flaky(db, data, scope):
        attempts.append(1)
        if len(attempts) == 1:
            raise ConcurrencyConflict()
        return await original(db, data, scope)

    mocker.patch.object(MonthlyContributionEngine, "create_record", side_effect=flaky)

    response = await client.post(
        "/v1/housing-support", json=_contribution(tenants.client_a), headers=auth_headers(company_id=tenants.company_a)
    )
    assert response.status_code == 201
    assert len(attempts) == 2


@pytest.mark.asyncio
async def test_housing_support_gives_up_after_max_retries(client, tenants, auth_headers, mocker):
    patched = mocker.patch.object(MonthlyContributionEngine, "create_record", side_effect=ConcurrencyConflict())

    response = await client.post(
        "/v1/housing-support", json=_contribution(tenants.client_a), headers=auth_headers(company_id=tenants.company_a)
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"
    assert patched.await_count == settings.running_total_max_retries


@pytest.mark.asyncio
async def test_client_balance_writes_require_admin_role(client, tenants, auth_headers):
    staff = auth_headers(company_id=tenants.company_a)
    company_admin = auth_headers(role=UserRole.COMPANY_ADMIN, company_id=tenants.company_a, user_id=3)

    response = await client.put(f"/v1/clients/{tenants.client_a}/balance", json={"amount": "-20.00"}, headers=staff)
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

    response = await client.put(
        f"/v1/clients/{tenants.client_a}/balance", json={"amount": "-20.00"}, headers=company_admin
    )
    assert response.status_code == 200
    assert response.json() == {"client_id": tenants.client_a, "balance": "-20.00"}

    response = await client.get(f"/v1/clients/{tenants.client_a}/balance", headers=staff)
    assert response.json()["balance"] == "-20.00"

    response = await client.put(
        f"/v1/clients/{tenants.client_a}/credit-limit", json={"amount": "-500"}, headers=company_admin
    )
    assert response.json()["credit_limit"] == "-500.00"

    response = await client.get(f"/v1/clients/{tenants.client_b}/credit-limit", headers=staff)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_global_credit_limit(client, tenants, auth_headers):
    company_admin = auth_headers(role=UserRole.COMPANY_ADMIN, company_id=tenants.company_a, user_id=3)

    response = await client.put("/v1/clients/credit-limit", json={"amount": "-75"}, headers=company_admin)
    assert response.status_code == 200
    assert response.json() == {
        "credit_limit": "-75.00",
        "clients_updated": 1,
        "scope": f"company:{tenants.company_a}",
    }

    admin = auth_headers(role=UserRole.ADMIN, user_id=99)
    response = await client.put(
        "/v1/clients/credit-limit", params={"system_wide": "true"}, json={"amount": "0"}, headers=admin
    )
    assert response.json()["clients_updated"] == 2
