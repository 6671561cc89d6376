"""Tests for request and transfer API endpoints."""

import pytest
from httpx import AsyncClient

BOLT = {"name": "Lightning Bolt", "oracle_id": "bolt-oracle", "catalog_id": "bolt-m10-en"}


@pytest.fixture
async def stocked(client: AsyncClient) -> None:
    """alice keeps three of her own bolts; bob and carol have nothing."""
    for handle in ("alice", "bob", "carol"):
        await client.post("/users", json={"handle": handle})
    await client.post(
        "/cards",
        json={"cards": [{"card": BOLT, "owner": "alice", "keeper": "alice", "quantity": 3}]},
    )


class TestRequests:
    async def test_request_lifecycle(self, client: AsyncClient, stocked: None) -> None:
        response = await client.post(
            "/requests",
            json={
                "requestor": "bob",
                "cards": [{"oracle_id": "bolt-oracle", "name": "Lightning Bolt", "quantity": 2}],
            },
        )
        assert response.status_code == 201
        request_id = response.json()["id"]
        assert response.json()["quantity"] == 2
        assert response.json()["closed"] is None

        assert (await client.post(f"/requests/{request_id}/close")).status_code == 204
        assert (await client.post(f"/requests/{request_id}/close")).status_code == 404

        listing = (await client.get("/requests/requestor/bob")).json()["requests"]
        assert [(r["id"], r["quantity"]) for r in listing] == [(request_id, 2)]
        assert listing[0]["closed"] is not None

        detail = (await client.get(f"/requests/{request_id}")).json()
        assert detail["cards"] == [
            {"oracle_id": "bolt-oracle", "name": "Lightning Bolt", "quantity": 2}
        ]

    async def test_unknown_request(self, client: AsyncClient, stocked: None) -> None:
        assert (await client.get("/requests/9999")).status_code == 404


class TestTransfers:
    async def test_transfer_lifecycle(self, client: AsyncClient, stocked: None) -> None:
        response = await client.post(
            "/transfers",
            json={
                "to_user": "bob",
                "from_user": "alice",
                "cards": [{"card": BOLT, "owner": "alice", "quantity": 2}],
            },
        )
        assert response.status_code == 201
        transfer = response.json()
        assert transfer["quantity"] == 2
        assert transfer["request_id"] is None

        kept_by_bob = (await client.get("/cards/keeper/bob")).json()["cards"]
        assert [(r["owner"], r["quantity"]) for r in kept_by_bob] == [("alice", 2)]

        assert (await client.post(f"/transfers/{transfer['id']}/close")).status_code == 204
        detail = (await client.get(f"/transfers/{transfer['id']}")).json()
        assert detail["closed"] is not None
        assert detail["cards"][0]["owner"] == "alice"

        assert [t["id"] for t in (await client.get("/transfers/to/bob")).json()["transfers"]] == [
            transfer["id"]
        ]
        assert [
            t["id"] for t in (await client.get("/transfers/from/alice")).json()["transfers"]
        ] == [transfer["id"]]

    async def test_insufficient_stock_is_bad_request(
        self, client: AsyncClient, stocked: None
    ) -> None:
        response = await client.post(
            "/transfers",
            json={
                "to_user": "bob",
                "from_user": "alice",
                "cards": [{"card": BOLT, "owner": "alice", "quantity": 5}],
            },
        )

        assert response.status_code == 400
        failure = response.json()["failure"]
        assert failure["kind"] == "insufficient_stock"
        assert "short by 2" in failure["detail"]

    async def test_cancel_transfer(self, client: AsyncClient, stocked: None) -> None:
        transfer = (
            await client.post(
                "/transfers",
                json={
                    "to_user": "bob",
                    "from_user": "alice",
                    "cards": [{"card": BOLT, "owner": "alice", "quantity": 1}],
                },
            )
        ).json()

        assert (await client.delete(f"/transfers/{transfer['id']}")).status_code == 204
        assert (await client.delete(f"/transfers/{transfer['id']}")).status_code == 404
        assert (await client.get(f"/transfers/{transfer['id']}")).status_code == 404
        # Custody stays with bob
        kept_by_bob = (await client.get("/cards/keeper/bob")).json()["cards"]
        assert [r["quantity"] for r in kept_by_bob] == [1]

    async def test_transfers_for_request(self, client: AsyncClient, stocked: None) -> None:
        request_id = (
            await client.post(
                "/requests",
                json={
                    "requestor": "bob",
                    "cards": [
                        {"oracle_id": "bolt-oracle", "name": "Lightning Bolt", "quantity": 1}
                    ],
                },
            )
        ).json()["id"]
        await client.post(
            "/transfers",
            json={
                "to_user": "bob",
                "from_user": "alice",
                "request_id": request_id,
                "cards": [{"card": BOLT, "owner": "alice", "quantity": 1}],
            },
        )

        response = await client.get(f"/transfers/request/{request_id}")

        assert [t["request_id"] for t in response.json()["transfers"]] == [request_id]
        assert (await client.get("/transfers/request/9999")).status_code == 404
