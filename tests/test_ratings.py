"""Farm rating summary kept in step with active reviews."""
import uuid

import pytest
from sqlalchemy import select

from milkway.models.common import RecordStatus, round_rating
from milkway.models.review import Review
from milkway.services import rating_service
from tests.conftest import create_farm


@pytest.mark.parametrize(
    "total, count, expected",
    [
        (0, 0, 0.0),
        (5, 1, 5.0),
        (8, 2, 4.0),
        (13, 3, 4.3),
        (9, 2, 4.5),
        # 4.25 and 4.35 round half up
        (17, 4, 4.3),
        (87, 20, 4.4),
        # averages of stored one-decimal averages
        (8.7, 2, 4.4),
        (12.9, 3, 4.3),
    ],
)
def test_round_rating(total, count, expected):
    assert round_rating(total, count) == expected


def test_overall_rating_rounds_half_up():
    review = Review(rating=4)
    review.aspects = {"quality": 4, "service": 5, "value": 4, "cleanliness": 4}
    assert review.overall_rating == 4.3


async def farm_ratings(client, farm_id):
    resp = await client.get(f"/api/farms/{farm_id}")
    return resp.json()["ratings"]


async def post_review(client, headers, farm_id, rating):
    resp = await client.post(
        "/api/reviews", json={"farm": farm_id, "rating": rating}, headers=headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["review"]


async def test_create_and_delete_recompute_summary(client, farmer, buyer, second_buyer):
    farm = await create_farm(client, farmer["headers"])
    assert await farm_ratings(client, farm["id"]) == {"average": 0.0, "count": 0}

    first = await post_review(client, buyer["headers"], farm["id"], 5)
    assert await farm_ratings(client, farm["id"]) == {"average": 5.0, "count": 1}

    await post_review(client, second_buyer["headers"], farm["id"], 3)
    assert await farm_ratings(client, farm["id"]) == {"average": 4.0, "count": 2}

    resp = await client.delete(f"/api/reviews/{first['id']}", headers=buyer["headers"])
    assert resp.status_code == 200
    assert await farm_ratings(client, farm["id"]) == {"average": 3.0, "count": 1}


async def test_rating_update_recomputes(client, farmer, buyer):
    farm = await create_farm(client, farmer["headers"])
    review = await post_review(client, buyer["headers"], farm["id"], 2)

    resp = await client.put(
        f"/api/reviews/{review['id']}", json={"rating": 4}, headers=buyer["headers"]
    )
    assert resp.status_code == 200
    assert await farm_ratings(client, farm["id"]) == {"average": 4.0, "count": 1}


async def test_deleting_last_review_resets_to_zero(client, farmer, buyer):
    farm = await create_farm(client, farmer["headers"])
    review = await post_review(client, buyer["headers"], farm["id"], 4)
    await client.delete(f"/api/reviews/{review['id']}", headers=buyer["headers"])
    assert await farm_ratings(client, farm["id"]) == {"average": 0.0, "count": 0}


async def test_inactive_reviews_are_excluded(client, db, farmer, buyer, second_buyer):
    farm = await create_farm(client, farmer["headers"])
    await post_review(client, buyer["headers"], farm["id"], 1)
    await post_review(client, second_buyer["headers"], farm["id"], 5)

    hidden = (
        await db.execute(select(Review).where(Review.rating == 1))
    ).scalar_one()
    hidden.status = RecordStatus.INACTIVE
    await db.flush()

    recomputed = await rating_service.recompute_farm_rating(db, hidden.farm_id)
    assert recomputed.rating_average == 5.0
    assert recomputed.rating_count == 1

    stats = await rating_service.farm_review_statistics(db, hidden.farm_id)
    assert stats["total_reviews"] == 1
    assert stats["rating_distribution"] == {5: 1, 4: 0, 3: 0, 2: 0, 1: 0}


async def test_recompute_for_missing_farm_is_noop(db):
    assert await rating_service.recompute_farm_rating(db, uuid.uuid4()) is None
