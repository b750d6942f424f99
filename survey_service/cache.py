import json
import logging
from typing import List, Optional

import redis

from .config import settings

logger = logging.getLogger(__name__)

redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    decode_responses=True
)

def cache_key(prefix: str, *args, **kwargs) -> str:
    key_parts = [prefix]
    key_parts.extend(str(arg) for arg in args)
    key_parts.extend(f"{k}:{v}" for k, v in sorted(kwargs.items()))
    return ":".join(key_parts)

class CacheManager:
    """Read-through cache for survey question views.

    Surveys are immutable once created, so cached views never go stale and
    need no invalidation. Redis failures are logged and treated as a miss.
    """

    @staticmethod
    def get_questions(survey_id: int) -> Optional[List[dict]]:
        if not settings.CACHE_ENABLED:
            return None
        key = cache_key("survey_questions", survey_id)
        try:
            data = redis_client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache get error for %s: %s", key, e)
            return None
        return json.loads(data) if data else None

    @staticmethod
    def set_questions(survey_id: int, data: List[dict], expire: int = None):
        if not settings.CACHE_ENABLED:
            return
        key = cache_key("survey_questions", survey_id)
        try:
            redis_client.setex(key, expire or settings.CACHE_EXPIRE_SECONDS, json.dumps(data))
        except redis.RedisError as e:
            logger.warning("Cache set error for %s: %s", key, e)
