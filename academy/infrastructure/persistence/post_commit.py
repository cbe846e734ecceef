"""Defer cache invalidation until the SQL transaction commits.

Repositories call ``sink.apply(...)`` right after their write; with a
PostCommitInvalidator as the sink the set is queued on the session and only
applied by transactional_session() once COMMIT succeeded. A rollback discards
the queue, so a failed write never evicts (or repopulates) anything.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from academy.infrastructure.cache.invalidation import (
    InvalidationCoordinator,
    InvalidationSet,
    Repopulation,
)

logger = logging.getLogger(__name__)

_QUEUE_KEY = "academy.post_commit_invalidations"

_Pending = tuple[InvalidationCoordinator, InvalidationSet, tuple[Repopulation, ...]]


def _queue(session: AsyncSession) -> list[_Pending]:
    return session.info.setdefault(_QUEUE_KEY, [])


class PostCommitInvalidator:
    """InvalidationSink bound to one session; queues until commit."""

    def __init__(self, session: AsyncSession, coordinator: InvalidationCoordinator) -> None:
        self.session = session
        self.coordinator = coordinator

    async def apply(
        self,
        invalidation: InvalidationSet,
        repopulate: Iterable[Repopulation] = (),
    ) -> None:
        if invalidation.is_empty:
            return
        _queue(self.session).append((self.coordinator, invalidation, tuple(repopulate)))


def pending_invalidations(session: AsyncSession) -> list[InvalidationSet]:
    """Invalidation sets queued on session and not yet applied."""
    return [invalidation for _, invalidation, _ in session.info.get(_QUEUE_KEY, [])]


def discard_post_commit(session: AsyncSession) -> None:
    dropped = session.info.pop(_QUEUE_KEY, [])
    if dropped:
        logger.debug("Discarded %s queued invalidations after rollback", len(dropped))


async def run_post_commit(session: AsyncSession) -> None:
    """Apply queued invalidations in the order they were queued.

    Coordinators never raise for cache failures, so every queued set runs.
    """
    pending = session.info.pop(_QUEUE_KEY, [])
    for coordinator, invalidation, repopulate in pending:
        await coordinator.apply(invalidation, repopulate)
