import uuid
from decimal import Decimal
from typing import Dict

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.core.models import FeeAuditLog


@pytest.mark.asyncio
async def test_create_adjustment(
    client: AsyncClient, auth_headers: Dict[str, str], create_fee, create_year, actor_id
) -> None:
    year = await create_year("2024")
    fee = await create_fee()
    payload = {
        "fee_item_id": fee["id"],
        "adjustment_type": "increase",
        "amount": "2500",
        "effective_period_type": "from_year_onwards",
        "start_year_id": year["id"],
        "reason": "Inflation",
    }
    response = await client.post("/api/v1/fee-adjustments", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["fee_item_id"] == fee["id"]
    assert Decimal(data["amount"]) == Decimal("2500")
    assert data["start_year_id"] == year["id"]
    assert data["end_year_id"] is None
    assert data["adjusted_by"] == str(actor_id)


@pytest.mark.asyncio
async def test_specific_year_defaults_to_fee_year(
    client: AsyncClient, auth_headers: Dict[str, str], create_fee, create_year
) -> None:
    y2024 = await create_year("2024")
    y2025 = await create_year("2025")
    fee = await create_fee(academic_year_id=y2024["id"])

    response = await client.post(
        "/api/v1/fee-adjustments",
        json={"fee_item_id": fee["id"], "adjustment_type": "decrease", "amount": "100"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["start_year_id"] == y2024["id"]

    # a year-scoped fee cannot be adjusted for another year
    response = await client.post(
        "/api/v1/fee-adjustments",
        json={
            "fee_item_id": fee["id"],
            "adjustment_type": "decrease",
            "amount": "100",
            "start_year_id": y2025["id"],
        },
        headers=auth_headers,
    )
    assert response.json()["start_year_id"] == y2024["id"]


@pytest.mark.asyncio
async def test_specific_year_without_any_year(client: AsyncClient, auth_headers: Dict[str, str], create_fee) -> None:
    fee = await create_fee()
    response = await client.post(
        "/api/v1/fee-adjustments",
        json={"fee_item_id": fee["id"], "adjustment_type": "increase", "amount": "100"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "extra",
    [
        {"effective_period_type": "year_range"},
        {"effective_period_type": "from_year_onwards"},
        {"amount": "0"},
        {"amount": "-10"},
    ],
)
async def test_invalid_adjustment_payloads(
    client: AsyncClient, auth_headers: Dict[str, str], create_fee, create_year, extra
) -> None:
    year = await create_year("2024")
    fee = await create_fee()
    payload = {
        "fee_item_id": fee["id"],
        "adjustment_type": "increase",
        "amount": "100",
        "start_year_id": year["id"],
    }
    if extra.get("effective_period_type") == "from_year_onwards":
        payload.pop("start_year_id")
    payload.update(extra)
    response = await client.post("/api/v1/fee-adjustments", json=payload, headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_end_only_allowed_for_range(
    client: AsyncClient, auth_headers: Dict[str, str], create_fee, create_year
) -> None:
    y2024 = await create_year("2024")
    y2025 = await create_year("2025")
    fee = await create_fee()
    response = await client.post(
        "/api/v1/fee-adjustments",
        json={
            "fee_item_id": fee["id"],
            "adjustment_type": "increase",
            "amount": "100",
            "effective_period_type": "from_year_onwards",
            "start_year_id": y2024["id"],
            "end_year_id": y2025["id"],
        },
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_range_end_before_start(
    client: AsyncClient, auth_headers: Dict[str, str], create_fee, create_year
) -> None:
    y2024 = await create_year("2024")
    y2025 = await create_year("2025")
    fee = await create_fee()
    response = await client.post(
        "/api/v1/fee-adjustments",
        json={
            "fee_item_id": fee["id"],
            "adjustment_type": "increase",
            "amount": "100",
            "effective_period_type": "year_range",
            "start_year_id": y2025["id"],
            "end_year_id": y2024["id"],
        },
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_locked_start_year_rejected(
    client: AsyncClient, auth_headers: Dict[str, str], create_fee, create_year
) -> None:
    year = await create_year("2024")
    await client.post(f"/api/v1/academic-years/{year['id']}/lock", headers=auth_headers)
    fee = await create_fee()
    response = await client.post(
        "/api/v1/fee-adjustments",
        json={
            "fee_item_id": fee["id"],
            "adjustment_type": "increase",
            "amount": "100",
            "effective_period_type": "from_year_onwards",
            "start_year_id": year["id"],
        },
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_discounts_and_unknown_fees_cannot_be_adjusted(
    client: AsyncClient, auth_headers: Dict[str, str], create_year
) -> None:
    year = await create_year("2024")
    discount = (
        await client.post("/api/v1/discounts", json={"name": "Bursary", "amount": "100"}, headers=auth_headers)
    ).json()
    payload = {
        "fee_item_id": discount["id"],
        "adjustment_type": "increase",
        "amount": "100",
        "start_year_id": year["id"],
    }
    response = await client.post("/api/v1/fee-adjustments", json=payload, headers=auth_headers)
    assert response.status_code == 400

    payload["fee_item_id"] = str(uuid.uuid4())
    response = await client.post("/api/v1/fee-adjustments", json=payload, headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_adjustments_by_fee(
    client: AsyncClient, db_session: AsyncSession, auth_headers: Dict[str, str], create_fee, create_year, actor_id
) -> None:
    year = await create_year("2024")
    tuition = await create_fee("Tuition")
    bus = await create_fee("Bus")
    for fee, amount in ((tuition, "10"), (tuition, "20"), (bus, "30")):
        response = await client.post(
            "/api/v1/fee-adjustments",
            json={
                "fee_item_id": fee["id"],
                "adjustment_type": "increase",
                "amount": amount,
                "effective_period_type": "from_year_onwards",
                "start_year_id": year["id"],
            },
            headers=auth_headers,
        )
        assert response.status_code == 201

    response = await client.get(
        "/api/v1/fee-adjustments", params={"fee_item_id": tuition["id"]}, headers=auth_headers
    )
    assert [Decimal(a["amount"]) for a in response.json()] == [Decimal("10"), Decimal("20")]

    response = await client.get("/api/v1/fee-adjustments", headers=auth_headers)
    assert len(response.json()) == 3

    logs = await db_session.execute(select(FeeAuditLog).where(FeeAuditLog.action_type == "ADJUST"))
    logs = logs.scalars().all()
    assert len(logs) == 3
    assert all(log.changed_by == actor_id for log in logs)
