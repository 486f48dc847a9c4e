"""Aggregate counters shown on the home page."""

import json
import logging

from pydantic import BaseModel

from src.core import db_client
from src.core.cache_client import cache_client
from src.core.config import Constants, settings
from src.core.logging import span


logger = logging.getLogger(__name__)


class HomeCounters(BaseModel):
    """Total number of tasks and comments in the store."""

    tasks: int
    comments: int


async def get_home_counters() -> HomeCounters:
    """Return the counters, recomputing them at most once per revalidation interval."""
    with span("counter_service.get_home_counters"):
        cached_value = await cache_client.get(Constants.CACHE_KEY_HOME_COUNTERS)
        if cached_value is not None:
            return HomeCounters.model_validate(json.loads(cached_value))

        counters = HomeCounters(
            tasks=await db_client.count_records(collection=Constants.TASKS_COLLECTION),
            comments=await db_client.count_records(collection=Constants.COMMENTS_COLLECTION),
        )
        await cache_client.set(
            Constants.CACHE_KEY_HOME_COUNTERS,
            counters.model_dump_json(),
            settings.home_revalidate_seconds,
        )
        logger.info("home_counters_revalidated", extra=counters.model_dump())
        return counters
