"""Post-commit invalidation: queued on the session, applied only after COMMIT."""

import pytest
from pydantic import TypeAdapter

from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import (
    InvalidationCoordinator,
    InvalidationSet,
    Repopulation,
)
from academy.infrastructure.persistence.database import transactional_session
from academy.infrastructure.persistence.post_commit import (
    PostCommitInvalidator,
    discard_post_commit,
    pending_invalidations,
    run_post_commit,
)
from tests.fakes import FakeSession, FakeSessionFactory, InMemoryCache

_INT = TypeAdapter(int)


@pytest.fixture
def coordinator(cache: InMemoryCache) -> InvalidationCoordinator:
    cache.data.update({"k1": 1, "k2": 2})
    return InvalidationCoordinator(CacheAsideStore(cache))


async def test_apply_queues_without_touching_cache(cache, coordinator):
    session = FakeSession()
    sink = PostCommitInvalidator(session, coordinator)

    await sink.apply(InvalidationSet.of(keys=["k1"]))
    await sink.apply(InvalidationSet())

    assert pending_invalidations(session) == [InvalidationSet.of(keys=["k1"])]
    assert cache.calls == []


async def test_run_post_commit_applies_in_order_and_clears(cache, coordinator):
    session = FakeSession()
    sink = PostCommitInvalidator(session, coordinator)
    await sink.apply(InvalidationSet.of(keys=["k2"]))
    await sink.apply(InvalidationSet.of(keys=["k1"]), [Repopulation("k1", 5, _INT)])

    await run_post_commit(session)

    assert [key for _, key in cache.calls] == ["k2", "k1", "k1"]
    assert cache.data == {"k1": 5}
    assert pending_invalidations(session) == []


async def test_discard_drops_queue(cache, coordinator):
    session = FakeSession()
    await PostCommitInvalidator(session, coordinator).apply(InvalidationSet.of(keys=["k1"]))
    discard_post_commit(session)
    await run_post_commit(session)
    assert cache.calls == []


async def test_transactional_session_invalidates_after_commit(cache, coordinator):
    factory = FakeSessionFactory()

    async with transactional_session(factory) as session:
        await PostCommitInvalidator(session, coordinator).apply(
            InvalidationSet.of(keys=["k1"])
        )
        assert "k1" in cache.data

    assert factory.sessions[0].committed
    assert "k1" not in cache.data


async def test_transactional_session_rollback_keeps_cache(cache, coordinator):
    factory = FakeSessionFactory()

    with pytest.raises(RuntimeError):
        async with transactional_session(factory) as session:
            await PostCommitInvalidator(session, coordinator).apply(
                InvalidationSet.of(keys=["k1", "k2"])
            )
            raise RuntimeError("write failed")

    assert factory.sessions[0].rolled_back
    assert not factory.sessions[0].committed
    assert cache.data == {"k1": 1, "k2": 2}
    assert pending_invalidations(factory.sessions[0]) == []
