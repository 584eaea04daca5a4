"""API tests for the booking lifecycle."""

import uuid

import pytest

pytestmark = pytest.mark.asyncio


def _body(inventory, check_in="2024-06-07", check_out="2024-06-09", unit="unit", **extra) -> dict:
    return {
        "guest_id": str(inventory["guest"].id),
        "unit_id": str(inventory[unit].id),
        "check_in": check_in,
        "check_out": check_out,
        **extra,
    }


async def _create(client, inventory, **kwargs) -> dict:
    response = await client.post("/api/v1/bookings", json=_body(inventory, **kwargs))
    assert response.status_code == 201, response.text
    return response.json()


class TestCreate:
    async def test_weekend_stay_priced_per_night(self, client, inventory):
        booking = await _create(client, inventory, adults=2, special_requests="Late arrival")

        assert booking["status"] == "pending"
        assert booking["nights"] == 2
        assert booking["total_amount"] == "240.00"
        assert [n["price"] for n in booking["nightly_prices"]] == ["120.00", "120.00"]
        assert booking["reference"]

    async def test_overlap_conflict_names_booking(self, client, inventory):
        first = await _create(client, inventory, check_in="2024-06-01", check_out="2024-06-04")

        response = await client.post(
            "/api/v1/bookings", json=_body(inventory, check_in="2024-06-03", check_out="2024-06-05")
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "UnitUnavailable"
        assert body["conflicting_booking_id"] == first["id"]
        assert body["check_in"] == "2024-06-03"

        # Touching ranges are fine, and another unit is unaffected.
        await _create(client, inventory, check_in="2024-06-04", check_out="2024-06-06")
        await _create(client, inventory, check_in="2024-06-03", check_out="2024-06-05", unit="other_unit")

    async def test_capacity_exceeded(self, client, inventory):
        response = await client.post("/api/v1/bookings", json=_body(inventory, adults=2, children=1))
        assert response.status_code == 422
        assert response.json()["error"] == "CapacityExceeded"

    async def test_empty_range(self, client, inventory):
        response = await client.post(
            "/api/v1/bookings", json=_body(inventory, check_in="2024-06-07", check_out="2024-06-07")
        )
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidRange"

    async def test_unknown_unit(self, client, inventory):
        body = _body(inventory)
        body["unit_id"] = str(uuid.uuid4())
        response = await client.post("/api/v1/bookings", json=body)
        assert response.status_code == 404


class TestRead:
    async def test_detail_includes_guest_unit_and_balance(self, client, inventory):
        booking = await _create(client, inventory)

        response = await client.get(f"/api/v1/bookings/{booking['id']}")
        assert response.status_code == 200
        detail = response.json()
        assert detail["guest"]["full_name"] == "Abebe Kebede"
        assert detail["unit"]["code"] == "R1"
        assert detail["balance"]["paid"] == "0.00"
        assert detail["balance"]["outstanding"] == "240.00"
        assert detail["balance"]["is_paid"] is False

    async def test_list_filters(self, client, inventory):
        await _create(client, inventory, check_in="2024-06-01", check_out="2024-06-03")
        await _create(client, inventory, check_in="2024-06-10", check_out="2024-06-12")
        await _create(client, inventory, check_in="2024-06-01", check_out="2024-06-03", unit="other_unit")

        everything = (await client.get("/api/v1/bookings")).json()
        assert everything["total"] == 3

        on_r1 = (await client.get("/api/v1/bookings", params={"unit_id": str(inventory["unit"].id)})).json()
        assert on_r1["total"] == 2
        assert [b["check_in"] for b in on_r1["items"]] == ["2024-06-01", "2024-06-10"]

        later = (await client.get("/api/v1/bookings", params={"check_in_from": "2024-06-05"})).json()
        assert later["total"] == 1

    async def test_missing_booking(self, client):
        response = await client.get(f"/api/v1/bookings/{uuid.uuid4()}")
        assert response.status_code == 404


class TestLifecycle:
    async def test_confirm_check_in_check_out(self, client, inventory):
        booking = await _create(client, inventory)
        url = f"/api/v1/bookings/{booking['id']}/transitions"

        for target in ("confirmed", "checked_in", "checked_out"):
            response = await client.post(url, json={"status": target})
            assert response.status_code == 200, response.text
            assert response.json()["status"] == target

        unit = (await client.get(f"/api/v1/units/{inventory['unit'].id}")).json()
        assert unit["status"] == "available"

    async def test_illegal_transition(self, client, inventory):
        booking = await _create(client, inventory)
        response = await client.post(
            f"/api/v1/bookings/{booking['id']}/transitions", json={"status": "checked_out"}
        )
        assert response.status_code == 409
        assert response.json()["error"] == "InvalidTransition"

    async def test_unknown_status_rejected_by_schema(self, client, inventory):
        booking = await _create(client, inventory)
        response = await client.post(
            f"/api/v1/bookings/{booking['id']}/transitions", json={"status": "no_show"}
        )
        assert response.status_code == 422

    async def test_cancel_releases_dates(self, client, inventory):
        booking = await _create(client, inventory)
        response = await client.post(f"/api/v1/bookings/{booking['id']}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        await _create(client, inventory)

    async def test_move_dates_reprices(self, client, inventory):
        booking = await _create(client, inventory, check_in="2024-06-03", check_out="2024-06-05")
        assert booking["total_amount"] == "200.00"

        response = await client.patch(
            f"/api/v1/bookings/{booking['id']}/dates",
            json={"check_in": "2024-06-06", "check_out": "2024-06-09"},
        )
        assert response.status_code == 200
        moved = response.json()
        assert moved["check_in"] == "2024-06-06"
        assert moved["total_amount"] == "340.00"

    async def test_balance_endpoint(self, client, inventory):
        booking = await _create(client, inventory)
        response = await client.get(f"/api/v1/bookings/{booking['id']}/balance")
        assert response.status_code == 200
        assert response.json()["total_amount"] == "240.00"
