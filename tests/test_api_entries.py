"""Tests for entry submission and gallery endpoints."""
import uuid

import pytest

from costume_contest.services.blob_storage import get_blob_storage

FORM = {"phone": "050-123-4567", "name": "Dana", "costume_title": "Witch", "description": "Pointy hat"}


def image(filename="dana.jpg"):
    return {"image": (filename, b"\xff\xd8\xff\xe0 photo", "image/jpeg")}


@pytest.mark.asyncio
async def test_submit_entry(client):
    response = await client.post("/entries", data=FORM, files=image())

    assert response.status_code == 201
    body = response.json()
    assert body["costume_title"] == "Witch"
    assert body["total_score"] == 0
    assert body["created_at"].endswith("Z")
    assert "phone" not in body
    assert body["image_url"].startswith("http://test/uploads/0501234567-")

    fetched = await client.get(f"/entries/{body['entry_id']}")
    assert fetched.json()["entry_id"] == body["entry_id"]


@pytest.mark.asyncio
async def test_duplicate_phone_conflicts_without_storing_another_image(client):
    await client.post("/entries", data=FORM, files=image())
    stored = sorted(p.name for p in get_blob_storage().root.iterdir())

    again = await client.post("/entries", data={**FORM, "phone": "+972501234567"}, files=image("other.png"))

    assert again.status_code == 409
    assert again.json()["detail"]["message"] == "phone already registered"
    assert sorted(p.name for p in get_blob_storage().root.iterdir()) == stored
    assert len((await client.get("/entries")).json()["entries"]) == 1


@pytest.mark.asyncio
async def test_missing_image_or_fields(client):
    no_image = await client.post("/entries", data=FORM)
    no_name = await client.post("/entries", data={**FORM, "name": ""}, files=image())
    bad_type = await client.post("/entries", data=FORM, files=image("dana.pdf"))

    assert no_image.status_code == 400
    assert no_image.json()["detail"]["code"] == "missing_fields"
    assert no_name.json()["detail"]["code"] == "missing_fields"
    assert bad_type.json()["detail"]["code"] == "invalid_image_type"


@pytest.mark.asyncio
async def test_gallery_orderings(client, entry_factory):
    low = await entry_factory(total_score=1)
    high = await entry_factory(total_score=20)

    recent = await client.get("/entries")
    ranked = await client.get("/entries", params={"order": "rank"})
    top = await client.get("/entries/top", params={"limit": 1})

    assert [e["entry_id"] for e in recent.json()["entries"]] == [str(high.entry_id), str(low.entry_id)]
    assert [e["entry_id"] for e in ranked.json()["entries"]] == [str(high.entry_id), str(low.entry_id)]
    assert [e["entry_id"] for e in top.json()["entries"]] == [str(high.entry_id)]


@pytest.mark.asyncio
async def test_unknown_entry_is_not_found(client):
    response = await client.get(f"/entries/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "entry_not_found"


@pytest.mark.asyncio
async def test_uploaded_image_is_served(client):
    created = (await client.post("/entries", data=FORM, files=image())).json()
    path = created["image_url"].removeprefix("http://test")

    response = await client.get(path)

    assert response.status_code == 200
    assert response.content == b"\xff\xd8\xff\xe0 photo"

