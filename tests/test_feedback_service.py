import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from contracts.models import FeedbackRecord, PersonalizedWeights
from services.feedback_service import FeedbackService, adjust_weight, parse_match_factor

pytestmark = pytest.mark.unit


def feedback(rating: str = "positive", factors: list[str] | None = None) -> FeedbackRecord:
    return FeedbackRecord(
        user_id="user-1",
        search_context="keaton batman",
        match_factors=factors if factors is not None else ["Actor: Michael Keaton", "genre: Action"],
        rating=rating,
    )


class TestParseMatchFactor:
    @pytest.mark.parametrize(
        "factor,expected",
        [
            ("genre: Action", ("genres", "Action")),
            ("Actor: Michael Keaton", ("actors", "Michael Keaton")),
            ("DIRECTOR:Tim Burton", ("directors", "Tim Burton")),
            ("keyword: gotham", ("keywords", "gotham")),
            ("era: 1980s", ("eras", "1980s")),
        ],
    )
    def test_known_categories(self, factor, expected):
        assert parse_match_factor(factor) == expected

    @pytest.mark.parametrize("factor", ["studio: Warner", "Action", "genre:", "", None])
    def test_unknown_or_empty(self, factor):
        assert parse_match_factor(factor) == (None, None)


class TestAdjustWeight:
    def test_positive_and_negative_steps(self):
        assert adjust_weight(1.0, "positive") == 1.1
        assert adjust_weight(1.0, "negative") == 0.95
        assert adjust_weight(1.0, "neutral") == 0.95

    def test_clamped(self):
        assert adjust_weight(2.0, "positive") == 2.0
        assert adjust_weight(0.1, "negative") == 0.1


class TestFeedbackService:
    @pytest.mark.asyncio
    async def test_store_feedback_persists_and_updates_profile(self, fake_redis):
        service = FeedbackService(fake_redis)

        assert await service.store_feedback(feedback()) is True

        stored = json.loads(fake_redis.lists["feedback:user-1"][0])
        assert stored["userId"] == "user-1"
        assert stored["matchFactors"] == ["Actor: Michael Keaton", "genre: Action"]
        assert len(fake_redis.lists["feedback:all"]) == 1

        weights = await service.get_personalized_weights("user-1")
        assert weights.actors == {"Michael Keaton": 1.1}
        assert weights.genres == {"Action": 1.1}
        assert weights.directors == {}

    @pytest.mark.asyncio
    async def test_weights_accumulate_and_clamp(self, fake_redis):
        service = FeedbackService(fake_redis)

        for _ in range(15):
            await service.store_feedback(feedback("positive", ["genre: Action"]))
        for _ in range(3):
            await service.store_feedback(feedback("negative", ["era: 1980s"]))

        weights = await service.get_personalized_weights("user-1")
        assert weights.genres["Action"] == 2.0
        assert weights.eras["1980s"] == pytest.approx(0.85)

    @pytest.mark.asyncio
    async def test_repeated_factor_in_one_record_applies_twice(self, fake_redis):
        service = FeedbackService(fake_redis)

        await service.store_feedback(feedback("positive", ["genre: Drama", "Genre: Drama"]))

        weights = await service.get_personalized_weights("user-1")
        assert weights.genres["Drama"] == pytest.approx(1.2)

    @pytest.mark.asyncio
    async def test_unknown_user_gets_default_weights(self, fake_redis):
        service = FeedbackService(fake_redis)

        weights = await service.get_personalized_weights("nobody")

        assert weights == PersonalizedWeights.default_weights()
        assert weights.to_dict()["genres"] == {"weight": 1.0}

    @pytest.mark.asyncio
    async def test_storage_error_on_weights_gives_defaults(self):
        redis = AsyncMock()
        redis.exists.side_effect = RedisConnectionError("down")

        weights = await FeedbackService(redis).get_personalized_weights("user-1")

        assert weights == PersonalizedWeights.default_weights()

    @pytest.mark.asyncio
    async def test_storage_error_on_store_propagates(self, fake_redis):
        async def broken(*args, **kwargs):
            raise RedisConnectionError("down")

        fake_redis.hget = broken
        service = FeedbackService(fake_redis)

        with pytest.raises(RedisConnectionError):
            await service.store_feedback(feedback())
