"""Tests for health and shell endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_sidebar_lists_sections_in_order(client: AsyncClient):
    response = await client.get("/v1/shell/sections")
    assert response.status_code == 200
    data = response.json()

    assert data["default"] == "ads"
    ids = [s["id"] for s in data["sections"]]
    assert len(ids) == 18
    assert ids[0] == "ads"
    assert ids[-3:] == ["likes", "comments", "bookmarks"]


@pytest.mark.asyncio
async def test_describe_nested_section(client: AsyncClient):
    response = await client.get("/v1/shell/sections/shop-categories")
    assert response.status_code == 200
    data = response.json()

    assert data["kind"] == "nested"
    assert data["editable"] is True
    assert data["required"] == ["title"]
    assert data["defaults"] == {"title": "", "image": ""}
    assert data["item_required"] == ["title", "links"]
    assert "no_of_ratings" in data["item_defaults"]


@pytest.mark.asyncio
async def test_describe_unknown_section(client: AsyncClient):
    response = await client.get("/v1/shell/sections/nope")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
