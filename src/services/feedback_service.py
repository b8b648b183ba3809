"""
Feedback subsystem.

Stores user feedback on search results and keeps a per-user preference
profile derived from it. Each match factor of the form "category: value"
nudges that value's weight up (positive feedback) or down (anything else),
clamped to [MIN_WEIGHT, MAX_WEIGHT]. The search pipeline reads the profile
back through get_personalized_weights.

Redis layout:
    feedback:<user>                        list of FeedbackRecord JSON, newest first
    feedback:all                           same, across users
    search_pattern:<user>:<category>       hash value -> weight
    search_pattern:<user>                  hash with lastUpdated
"""

from datetime import UTC, datetime

from redis.asyncio import Redis
from redis.exceptions import RedisError

from contracts.models import PREFERENCE_CATEGORIES, FeedbackRecord, PersonalizedWeights
from utils.get_logger import get_logger

logger = get_logger(__name__)

MATCH_FACTOR_CATEGORIES = ("genre", "actor", "director", "keyword", "era")
DEFAULT_WEIGHT = 1.0
MIN_WEIGHT = 0.1
MAX_WEIGHT = 2.0
POSITIVE_ADJUSTMENT = 0.1
NEGATIVE_ADJUSTMENT = -0.05


def parse_match_factor(factor: str) -> tuple[str | None, str | None]:
    """
    Split "Genre: Action" into ("genres", "Action").

    Returns (None, None) when the factor names no known category or has no value.
    """
    if not isinstance(factor, str) or ":" not in factor:
        return None, None
    lowered = factor.lower()
    for category in MATCH_FACTOR_CATEGORIES:
        if f"{category}:" in lowered:
            value = factor.split(":", 1)[1].strip()
            if not value:
                return None, None
            return f"{category}s", value
    return None, None


def adjust_weight(current: float, rating: str) -> float:
    adjustment = POSITIVE_ADJUSTMENT if rating == "positive" else NEGATIVE_ADJUSTMENT
    return round(max(MIN_WEIGHT, min(MAX_WEIGHT, current + adjustment)), 4)


class FeedbackService:
    def __init__(self, redis: Redis, prefix: str = ""):
        self._redis = redis
        self.prefix = prefix

    def _key(self, *parts: str) -> str:
        key = ":".join(parts)
        return f"{self.prefix}:{key}" if self.prefix else key

    async def store_feedback(self, record: FeedbackRecord) -> bool:
        """Persist one feedback record and fold it into the user's profile.

        Raises:
            RedisError: when the record or the profile cannot be written
        """
        try:
            payload = record.model_dump_json(by_alias=True)
            async with self._redis.pipeline(transaction=False) as pipe:
                pipe.lpush(self._key("feedback", record.user_id), payload)
                pipe.lpush(self._key("feedback", "all"), payload)
                await pipe.execute()
            await self.update_search_patterns(record)
            logger.info(
                f"Stored {record.rating} feedback for user {record.user_id} "
                f"({len(record.match_factors)} match factors)"
            )
            return True
        except RedisError as e:
            logger.error(f"Error storing feedback for user {record.user_id}: {e}")
            raise

    async def update_search_patterns(self, record: FeedbackRecord) -> None:
        updates: dict[str, dict[str, float]] = {}
        for factor in record.match_factors:
            category, value = parse_match_factor(factor)
            if category is None or value is None:
                logger.debug(f"Ignoring match factor {factor!r}")
                continue

            key = self._key("search_pattern", record.user_id, category)
            pending = updates.setdefault(key, {})
            if value in pending:
                current = pending[value]
            else:
                stored = await self._redis.hget(key, value)
                current = float(stored) if stored is not None else DEFAULT_WEIGHT
            pending[value] = adjust_weight(current, record.rating)

        if not updates:
            return

        async with self._redis.pipeline(transaction=True) as pipe:
            for key, mapping in updates.items():
                pipe.hset(key, mapping={v: str(w) for v, w in mapping.items()})
            pipe.hset(
                self._key("search_pattern", record.user_id),
                mapping={"lastUpdated": datetime.now(UTC).isoformat()},
            )
            await pipe.execute()

    async def get_personalized_weights(self, user_id: str) -> PersonalizedWeights:
        """The user's preference profile; default weights for unknown users or on error."""
        try:
            if not await self._redis.exists(self._key("search_pattern", user_id)):
                return PersonalizedWeights.default_weights()

            profile: dict[str, dict[str, float]] = {}
            for category in PREFERENCE_CATEGORIES:
                stored = await self._redis.hgetall(self._key("search_pattern", user_id, category))
                profile[category] = {value: float(weight) for value, weight in stored.items()}
            return PersonalizedWeights(**profile)
        except (RedisError, ValueError) as e:
            logger.error(f"Error getting personalized weights for {user_id}: {e}")
            return PersonalizedWeights.default_weights()

