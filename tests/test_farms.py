"""Farm listing management: multipart create/update, ownership and soft delete."""
from tests.conftest import PNG_BYTES, create_farm, farm_form, register


def png(name="photo.png"):
    return ("farmImages", (name, PNG_BYTES, "image/png"))


async def test_create_farm_with_images(client, farmer, upload_dir):
    farm = await create_farm(client, farmer["headers"], files=[png("a.png"), png("b.png")])

    assert farm["name"] == "Green Pastures Dairy"
    assert farm["availability"] == ["morning"]
    assert farm["features"] == ["organic"]
    assert farm["ratings"] == {"average": 0.0, "count": 0}
    assert farm["canEdit"] is True
    assert farm["contact"]["email"] is None
    assert farm["location"]["country"] == "India"

    assert len(farm["images"]) == 2
    assert farm["images"][0]["isPrimary"] is True
    assert farm["images"][1]["isPrimary"] is False
    assert farm["images"][0]["url"].startswith("http://test/uploads/farms/farmImages-")
    assert farm["primaryImage"] == farm["images"][0]["url"]
    assert len(list((upload_dir / "farms").iterdir())) == 2


async def test_create_farm_requires_farmer(client, buyer):
    resp = await client.post("/api/farms", data=farm_form(), headers=buyer["headers"])
    assert resp.status_code == 403


async def test_create_farm_requires_auth(client):
    resp = await client.post("/api/farms", data=farm_form())
    assert resp.status_code == 401


async def test_create_farm_bad_location_json(client, farmer):
    form = farm_form()
    form["location"] = "{not json"
    resp = await client.post("/api/farms", data=form, headers=farmer["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid location data"


async def test_create_farm_bad_features_json_falls_back_to_empty(client, farmer):
    form = farm_form()
    form["features"] = "organic,raw"
    resp = await client.post("/api/farms", data=form, headers=farmer["headers"])
    assert resp.status_code == 201
    assert resp.json()["farm"]["features"] == []


async def test_create_farm_price_out_of_range(client, farmer):
    resp = await client.post("/api/farms", data=farm_form(price=5000), headers=farmer["headers"])
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"] == "Validation failed"
    assert any(error["field"] == "price" for error in body["errors"])


async def test_create_farm_needs_availability(client, farmer):
    resp = await client.post(
        "/api/farms", data=farm_form(availability=[]), headers=farmer["headers"]
    )
    assert resp.status_code == 400


async def test_create_farm_rejects_non_image(client, farmer, upload_dir):
    resp = await client.post(
        "/api/farms",
        data=farm_form(),
        files=[png("ok.png"), ("farmImages", ("notes.txt", b"hello", "text/plain"))],
        headers=farmer["headers"],
    )
    assert resp.status_code == 400
    assert "Invalid file type" in resp.json()["message"]
    # the image accepted before the rejection is cleaned up
    farms_dir = upload_dir / "farms"
    assert not farms_dir.exists() or list(farms_dir.iterdir()) == []


async def test_create_farm_too_many_images(client, farmer):
    files = [png(f"{index}.png") for index in range(6)]
    resp = await client.post(
        "/api/farms", data=farm_form(), files=files, headers=farmer["headers"]
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Too many files. Max 5 allowed."


async def test_get_farm_with_can_edit_per_viewer(client, farmer, buyer):
    farm = await create_farm(client, farmer["headers"])

    anonymous = (await client.get(f"/api/farms/{farm['id']}")).json()
    as_buyer = (await client.get(f"/api/farms/{farm['id']}", headers=buyer["headers"])).json()
    as_owner = (await client.get(f"/api/farms/{farm['id']}", headers=farmer["headers"])).json()

    assert anonymous["canEdit"] is False
    assert as_buyer["canEdit"] is False
    assert as_owner["canEdit"] is True
    assert as_owner["owner"]["name"] == "Ravi Patil"


async def test_get_farm_counts_views(client, farmer):
    farm = await create_farm(client, farmer["headers"])
    await client.get(f"/api/farms/{farm['id']}")
    await client.get(f"/api/farms/{farm['id']}")
    resp = await client.get("/api/farms/my-farms", headers=farmer["headers"])
    assert resp.json()["farms"][0]["views"] == 2


async def test_get_unknown_farm_is_404(client):
    resp = await client.get("/api/farms/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Farm not found"


async def test_update_farm_fields_and_append_images(client, farmer):
    farm = await create_farm(client, farmer["headers"], files=[png()])
    resp = await client.put(
        f"/api/farms/{farm['id']}",
        data={"price": "75", "availability": '["morning", "evening"]'},
        files=[png("new.png")],
        headers=farmer["headers"],
    )
    assert resp.status_code == 200
    updated = resp.json()["farm"]
    assert resp.json()["message"] == "Farm updated successfully"
    assert updated["price"] == 75
    assert updated["name"] == farm["name"]
    assert sorted(updated["availability"]) == ["evening", "morning"]
    assert len(updated["images"]) == 2
    assert [image["isPrimary"] for image in updated["images"]] == [True, False]


async def test_update_farm_by_other_farmer_is_403(client, farmer):
    farm = await create_farm(client, farmer["headers"])
    other = await register(client, "farmer", "other-farmer@example.com")
    resp = await client.put(
        f"/api/farms/{farm['id']}", data={"price": "10"}, headers=other["headers"]
    )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied. You can only update your own farms."

    unchanged = (await client.get(f"/api/farms/{farm['id']}")).json()
    assert unchanged["price"] == 60
    assert unchanged["isActive"] is True


async def test_deactivated_farm_hidden_from_public(client, farmer):
    farm = await create_farm(client, farmer["headers"])
    resp = await client.put(
        f"/api/farms/{farm['id']}", data={"isActive": "false"}, headers=farmer["headers"]
    )
    assert resp.status_code == 200
    assert resp.json()["farm"]["isActive"] is False

    resp = await client.get(f"/api/farms/{farm['id']}")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Farm is not available"

    listing = (await client.get("/api/farms")).json()
    assert listing["farms"] == []
    assert listing["pagination"]["totalFarms"] == 0

    # still visible to its owner
    mine = (await client.get("/api/farms/my-farms", headers=farmer["headers"])).json()
    assert mine["total"] == 1
    assert mine["farms"][0]["canEdit"] is True


async def test_delete_farm_removes_files(client, farmer, upload_dir):
    farm = await create_farm(client, farmer["headers"], files=[png()])
    assert len(list((upload_dir / "farms").iterdir())) == 1

    resp = await client.delete(f"/api/farms/{farm['id']}", headers=farmer["headers"])
    assert resp.status_code == 200
    assert resp.json()["message"] == "Farm deleted successfully"
    assert list((upload_dir / "farms").iterdir()) == []

    assert (await client.get(f"/api/farms/{farm['id']}")).status_code == 404
    mine = (await client.get("/api/farms/my-farms", headers=farmer["headers"])).json()
    assert mine["total"] == 0


async def test_delete_farm_by_other_farmer_is_403(client, farmer, upload_dir):
    farm = await create_farm(client, farmer["headers"], files=[png()])
    other = await register(client, "farmer", "other-farmer@example.com")
    resp = await client.delete(f"/api/farms/{farm['id']}", headers=other["headers"])
    assert resp.status_code == 403
    assert resp.json()["message"] == "Access denied. You can only delete your own farms."

    unchanged = (await client.get(f"/api/farms/{farm['id']}")).json()
    assert unchanged["isActive"] is True
    assert len(unchanged["images"]) == 1
    assert len(list((upload_dir / "farms").iterdir())) == 1


async def test_search_requires_two_characters(client):
    resp = await client.get("/api/farms/search", params={"q": "a"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Search query must be at least 2 characters long"


async def test_search_matches_city(client, farmer):
    await create_farm(client, farmer["headers"])
    await create_farm(
        client,
        farmer["headers"],
        name="Hill Top Milk",
        location={"address": "1 Ridge Lane", "city": "Nashik", "state": "Maharashtra"},
    )
    resp = await client.get("/api/farms/search", params={"q": "nash"})
    body = resp.json()
    assert body["total"] == 1
    assert body["farms"][0]["name"] == "Hill Top Milk"
