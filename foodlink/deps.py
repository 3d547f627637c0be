from functools import lru_cache

from fastapi import Depends

from foodlink.core.config import settings
from foodlink.core.clock import utcnow
from foodlink.services.lifecycle import InFlightGuard, ScheduleLifecycle
from foodlink.services.notifications import NotificationEmitter


@lru_cache(maxsize=1)
def get_repo():
    if settings.use_mongo:
        from foodlink.core.db import get_db
        from foodlink.repos.mongo import MongoRepo
        return MongoRepo(get_db())
    from foodlink.repos.inmemory import InMemoryRepo
    return InMemoryRepo()


def get_clock():
    return utcnow


@lru_cache(maxsize=1)
def get_inflight_guard() -> InFlightGuard:
    return InFlightGuard()


def get_emitter(repo=Depends(get_repo), clock=Depends(get_clock)) -> NotificationEmitter:
    return NotificationEmitter(repo, clock=clock)


def get_lifecycle(
    repo=Depends(get_repo),
    emitter: NotificationEmitter = Depends(get_emitter),
    guard: InFlightGuard = Depends(get_inflight_guard),
    clock=Depends(get_clock),
) -> ScheduleLifecycle:
    return ScheduleLifecycle(repo, emitter, guard=guard, clock=clock)
