"""Tests for stock API endpoints."""

import pytest
from httpx import AsyncClient

BOLT = {"name": "Lightning Bolt", "oracle_id": "bolt-oracle", "catalog_id": "bolt-m10-en"}


@pytest.fixture
async def members(client: AsyncClient) -> None:
    for handle in ("alice", "bob"):
        await client.post("/users", json={"handle": handle})


class TestAddCards:
    async def test_add_and_list(self, client: AsyncClient, members: None) -> None:
        response = await client.post(
            "/cards",
            json={"cards": [{"card": BOLT, "owner": "alice", "keeper": "bob", "quantity": 3}]},
        )

        assert response.status_code == 200
        assert response.json() == {"rows_added": 1}

        by_owner = await client.get("/cards/owner/alice")
        by_keeper = await client.get("/cards/keeper/bob")
        by_oracle = await client.get("/cards/oracle/bolt-oracle")

        expected = [
            {
                "card": {**BOLT, "foil": False},
                "owner": "alice",
                "keeper": "bob",
                "quantity": 3,
            }
        ]
        assert by_owner.json()["cards"] == expected
        assert by_keeper.json()["cards"] == expected
        assert by_oracle.json()["cards"] == expected

    async def test_zero_quantity_is_bad_request(self, client: AsyncClient, members: None) -> None:
        response = await client.post(
            "/cards",
            json={"cards": [{"card": BOLT, "owner": "alice", "keeper": "alice", "quantity": 0}]},
        )

        assert response.status_code == 400
        assert response.json()["failure"]["message"] == "zero or fewer cards"

    async def test_empty_batch_is_bad_request(self, client: AsyncClient) -> None:
        response = await client.post("/cards", json={"cards": []})

        assert response.status_code == 400

    async def test_unknown_owner_is_not_found(self, client: AsyncClient, members: None) -> None:
        response = await client.post(
            "/cards",
            json={"cards": [{"card": BOLT, "owner": "mallory", "keeper": "alice", "quantity": 1}]},
        )

        assert response.status_code == 404


class TestModifyQuantity:
    async def test_modify_and_delete(self, client: AsyncClient, members: None) -> None:
        await client.post(
            "/cards",
            json={"cards": [{"card": BOLT, "owner": "alice", "keeper": "alice", "quantity": 3}]},
        )
        body = {"owner": "alice", "keeper": "alice", "catalog_id": "bolt-m10-en"}

        response = await client.put("/cards/quantity", json={**body, "quantity": 5})
        assert response.status_code == 204
        rows = (await client.get("/cards/owner/alice")).json()["cards"]
        assert rows[0]["quantity"] == 5

        response = await client.put("/cards/quantity", json={**body, "quantity": 0})
        assert response.status_code == 204
        assert (await client.get("/cards/owner/alice")).json()["cards"] == []

    async def test_missing_row_is_not_found(self, client: AsyncClient, members: None) -> None:
        response = await client.put(
            "/cards/quantity",
            json={"owner": "alice", "keeper": "alice", "catalog_id": "nope", "quantity": 1},
        )

        assert response.status_code == 404


class TestListing:
    async def test_negative_limit_rejected(self, client: AsyncClient, members: None) -> None:
        response = await client.get("/cards/owner/alice", params={"limit": -1})

        assert response.status_code == 422

    async def test_pagination_params(self, client: AsyncClient, members: None) -> None:
        await client.post(
            "/cards",
            json={
                "cards": [
                    {
                        "card": {"name": f"Card {i}", "oracle_id": f"o{i}", "catalog_id": f"c{i}"},
                        "owner": "alice",
                        "keeper": "alice",
                        "quantity": 1,
                    }
                    for i in range(4)
                ]
            },
        )

        response = await client.get("/cards/owner/alice", params={"limit": 2, "offset": 1})

        assert [row["card"]["name"] for row in response.json()["cards"]] == ["Card 1", "Card 2"]
