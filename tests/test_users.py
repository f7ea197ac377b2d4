"""Profile, preferences, avatar, statistics and the error envelope."""
import json

from tests.conftest import PNG_BYTES, create_farm


def avatar_file(name="me.png"):
    return {"avatar": (name, PNG_BYTES, "image/png")}


async def test_get_profile_defaults(client, buyer):
    resp = await client.get("/api/users/profile", headers=buyer["headers"])
    assert resp.status_code == 200
    profile = resp.json()
    assert profile["avatar"] is None
    assert profile["preferences"] == {
        "notifications": {"email": True, "push": True},
        "privacy": {"showPhone": True, "showLocation": True},
    }


async def test_update_profile_fields(client, buyer):
    resp = await client.put(
        "/api/users/profile",
        data={
            "name": "Asha R",
            "phone": "+91 99887 76655",
            "location": json.dumps(
                {"address": "4 Station Road", "city": "Pune", "coordinates": {"lat": 18.5, "lng": 73.8}}
            ),
        },
        headers=buyer["headers"],
    )
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert resp.json()["message"] == "Profile updated successfully"
    assert user["name"] == "Asha R"
    assert user["phone"] == "+91 99887 76655"
    assert user["location"]["city"] == "Pune"
    assert user["location"]["coordinates"] == {"lat": 18.5, "lng": 73.8}


async def test_update_profile_invalid_location_json(client, buyer):
    resp = await client.put(
        "/api/users/profile", data={"location": "{oops"}, headers=buyer["headers"]
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid location data"


async def test_avatar_upload_replaces_previous_file(client, buyer, upload_dir):
    first = await client.put("/api/users/profile", files=avatar_file("one.png"), headers=buyer["headers"])
    assert first.status_code == 200
    assert first.json()["user"]["avatar"].startswith("http://test/uploads/avatars/avatar-")
    assert len(list((upload_dir / "avatars").iterdir())) == 1

    second = await client.put("/api/users/profile", files=avatar_file("two.png"), headers=buyer["headers"])
    assert second.status_code == 200
    assert second.json()["user"]["avatar"] != first.json()["user"]["avatar"]
    # only the new avatar is left on disk
    assert len(list((upload_dir / "avatars").iterdir())) == 1


async def test_avatar_rejects_wrong_type(client, buyer):
    resp = await client.put(
        "/api/users/profile",
        files={"avatar": ("me.gif", b"GIF89a", "image/gif")},
        headers=buyer["headers"],
    )
    assert resp.status_code == 400
    assert "Invalid file type" in resp.json()["message"]


async def test_delete_avatar(client, buyer, upload_dir):
    await client.put("/api/users/profile", files=avatar_file(), headers=buyer["headers"])

    resp = await client.delete("/api/users/avatar", headers=buyer["headers"])
    assert resp.status_code == 200
    assert list((upload_dir / "avatars").iterdir()) == []

    resp = await client.delete("/api/users/avatar", headers=buyer["headers"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "No avatar to delete"


async def test_update_preferences(client, buyer):
    resp = await client.put(
        "/api/users/preferences",
        json={"notifications": {"email": False, "push": True}},
        headers=buyer["headers"],
    )
    assert resp.status_code == 200
    preferences = resp.json()["preferences"]
    assert preferences["notifications"] == {"email": False, "push": True}
    assert preferences["privacy"] == {"showPhone": True, "showLocation": True}

    profile = (await client.get("/api/users/profile", headers=buyer["headers"])).json()
    assert profile["preferences"]["notifications"]["email"] is False


async def test_farmer_stats(client, farmer, buyer):
    farm = await create_farm(client, farmer["headers"])
    await create_farm(client, farmer["headers"], name="Quiet Farm")
    await client.post("/api/reviews", json={"farm": farm["id"], "rating": 4}, headers=buyer["headers"])
    await client.get(f"/api/farms/{farm['id']}")

    stats = (await client.get("/api/users/stats", headers=farmer["headers"])).json()
    assert stats["totalFarms"] == 2
    assert stats["activeFarms"] == 2
    assert stats["totalViews"] >= 1
    assert stats["averageRating"] == 2.0
    assert stats["accountAge"] == 0
    assert "totalReviews" not in stats


async def test_buyer_stats(client, farmer, buyer):
    first = await create_farm(client, farmer["headers"])
    second = await create_farm(client, farmer["headers"], name="Second Farm")
    await client.post("/api/reviews", json={"farm": first["id"], "rating": 4}, headers=buyer["headers"])
    await client.post("/api/reviews", json={"farm": second["id"], "rating": 5}, headers=buyer["headers"])
    await client.post("/api/wishlist", json={"farmId": first["id"]}, headers=buyer["headers"])

    stats = (await client.get("/api/users/stats", headers=buyer["headers"])).json()
    assert stats["totalReviews"] == 2
    assert stats["averageRatingGiven"] == 4.5
    assert stats["wishlistItems"] == 1
    assert "totalFarms" not in stats


async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    assert body["timestamp"]


async def test_unknown_route(client):
    resp = await client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {"message": "Route not found"}
