"""
Dramatiq broker configuration.

Redis-based message broker for the affiliate background tasks.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from loguru import logger

from app.config.settings import settings

redis_broker = RedisBroker(
    host=settings.redis_host,
    port=settings.redis_port,
    password=settings.redis_password or None,
    db=settings.redis_db,
)

dramatiq.set_broker(redis_broker)

broker = redis_broker

logger.info(
    f"Dramatiq broker initialized: "
    f"redis://{settings.redis_host}:{settings.redis_port}/{settings.redis_db}"
)
