"""Orders + reviews API tests.

Learn: Every order route requires authentication and only ever sees the
caller's own orders; somebody else's order is indistinguishable from a
missing one.
"""

import uuid

import pytest


async def _place_order(client, headers, assistant_id, **extra):
    r = await client.post(
        "/api/v1/orders",
        json={
            "assistantId": str(assistant_id),
            "serviceDetails": [{"serviceType": "setup", "quantity": 1}],
            **extra,
        },
        headers=headers,
    )
    assert r.status_code == 201, r.text
    return r.json()["data"]


# ═══════════════════════════════════════════════════════════
# Create & read
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_order(client, user, auth_headers, make_assistant):
    assistant = await make_assistant(name="Sales Pro", slug="sales-pro")

    r = await client.post(
        "/api/v1/orders",
        json={
            "assistantId": str(assistant.id),
            "serviceDetails": [{"serviceType": "setup", "details": {"seats": 3}}],
            "notes": "asap",
        },
        headers=auth_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Order created successfully"

    order = body["data"]
    assert order["userId"] == user["user"]["id"]
    assert order["status"] == "pending"
    assert order["totalAmount"] == 29.99
    assert order["currency"] == "USD"
    assert order["notes"] == "asap"
    assert order["serviceDetails"] == [{"serviceType": "setup", "details": {"seats": 3}}]
    assert order["assistant"] == {
        "id": str(assistant.id),
        "name": "Sales Pro",
        "slug": "sales-pro",
        "category": "productivity",
    }


@pytest.mark.asyncio
async def test_create_order_requires_auth(client, make_assistant):
    assistant = await make_assistant()

    r = await client.post(
        "/api/v1/orders",
        json={"assistantId": str(assistant.id), "serviceDetails": [{"serviceType": "x"}]},
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_order_for_inactive_assistant(client, auth_headers, make_assistant):
    assistant = await make_assistant(is_active=False)

    r = await client.post(
        "/api/v1/orders",
        json={"assistantId": str(assistant.id), "serviceDetails": [{"serviceType": "x"}]},
        headers=auth_headers,
    )
    assert r.status_code == 404
    assert r.json()["message"] == "Assistant not found or not available"


@pytest.mark.asyncio
async def test_create_order_validation(client, auth_headers, make_assistant):
    assistant = await make_assistant()

    # No service details
    r = await client.post(
        "/api/v1/orders",
        json={"assistantId": str(assistant.id), "serviceDetails": []},
        headers=auth_headers,
    )
    assert r.status_code == 400

    # Not a UUID
    r = await client.post(
        "/api/v1/orders",
        json={"assistantId": "sales-pro", "serviceDetails": [{"serviceType": "x"}]},
        headers=auth_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_get_order(client, auth_headers, make_assistant):
    assistant = await make_assistant()
    order = await _place_order(client, auth_headers, assistant.id)

    r = await client.get(f"/api/v1/orders/{order['id']}", headers=auth_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["id"] == order["id"]
    assert data["transactions"] == []
    assert data["reviews"] == []
    assert data["assistant"]["id"] == str(assistant.id)


@pytest.mark.asyncio
async def test_get_unknown_order(client, auth_headers):
    r = await client.get(f"/api/v1/orders/{uuid.uuid4()}", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["message"] == "Order not found"


@pytest.mark.asyncio
async def test_orders_are_private(client, auth_headers, register, make_assistant):
    assistant = await make_assistant()
    order = await _place_order(client, auth_headers, assistant.id)
    bob = await register()

    r = await client.get(f"/api/v1/orders/{order['id']}", headers=bob["headers"])
    assert r.status_code == 404

    r = await client.put(f"/api/v1/orders/{order['id']}/cancel", headers=bob["headers"])
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Cancel
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_cancel_pending_order(client, auth_headers, make_assistant):
    assistant = await make_assistant()
    order = await _place_order(client, auth_headers, assistant.id)

    r = await client.put(f"/api/v1/orders/{order['id']}/cancel", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Order cancelled successfully"
    assert r.json()["data"]["status"] == "cancelled"

    # Cancelling twice is not allowed
    r = await client.put(f"/api/v1/orders/{order['id']}/cancel", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["message"] == "Order not found or cannot be cancelled"


@pytest.mark.asyncio
async def test_cannot_cancel_completed_order(
    client, user, auth_headers, make_assistant, insert_order
):
    assistant = await make_assistant()
    order = await insert_order(user["user"]["id"], assistant.id, status="completed")

    r = await client.put(f"/api/v1/orders/{order.id}/cancel", headers=auth_headers)
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Reviews
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_review_completed_order(
    client, user, auth_headers, make_assistant, set_order_status
):
    assistant = await make_assistant(slug="sales-pro")
    order = await _place_order(client, auth_headers, assistant.id)
    await set_order_status(order["id"], "completed")

    r = await client.post(
        f"/api/v1/orders/{order['id']}/review",
        json={"rating": 4, "comment": "  Solid  "},
        headers=auth_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Review added successfully"
    review = body["data"]
    assert review["rating"] == 4
    assert review["comment"] == "Solid"
    assert review["orderId"] == order["id"]
    assert review["userId"] == user["user"]["id"]
    assert review["assistant"]["slug"] == "sales-pro"

    # The order detail now carries the review
    r = await client.get(f"/api/v1/orders/{order['id']}", headers=auth_headers)
    assert [rv["rating"] for rv in r.json()["data"]["reviews"]] == [4]


@pytest.mark.asyncio
async def test_review_pending_order_is_refused(client, auth_headers, make_assistant):
    assistant = await make_assistant()
    order = await _place_order(client, auth_headers, assistant.id)

    r = await client.post(
        f"/api/v1/orders/{order['id']}/review", json={"rating": 5}, headers=auth_headers
    )
    assert r.status_code == 404
    assert r.json()["message"] == "Order not found or not eligible for review"


@pytest.mark.asyncio
async def test_duplicate_review_conflicts(
    client, user, auth_headers, make_assistant, insert_order
):
    assistant = await make_assistant()
    order = await insert_order(user["user"]["id"], assistant.id, status="completed")

    r = await client.post(
        f"/api/v1/orders/{order.id}/review", json={"rating": 5}, headers=auth_headers
    )
    assert r.status_code == 201

    r = await client.post(
        f"/api/v1/orders/{order.id}/review", json={"rating": 1}, headers=auth_headers
    )
    assert r.status_code == 409
    assert r.json()["message"] == "Review already exists for this order"


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6])
async def test_rating_out_of_range(
    client, user, auth_headers, make_assistant, insert_order, rating
):
    assistant = await make_assistant()
    order = await insert_order(user["user"]["id"], assistant.id, status="completed")

    r = await client.post(
        f"/api/v1/orders/{order.id}/review", json={"rating": rating}, headers=auth_headers
    )
    assert r.status_code == 400
