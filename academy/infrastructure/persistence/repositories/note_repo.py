"""Note (grade record) repository with cache-aside reads. Returns application DTOs.

All note keys are tenant-agnostic: every lookup is by globally unique student,
test or course ids whose ownership the use cases check.
"""

from __future__ import annotations

from typing import Any

from pydantic import TypeAdapter
from sqlalchemy import func, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from academy.application.dtos.note import NoteResult, NoteUpsert
from academy.domain.exceptions import ConflictException
from academy.infrastructure.cache.cache_aside import CacheAsideStore
from academy.infrastructure.cache.invalidation import InvalidationSink
from academy.infrastructure.cache.invalidation_plans import notes_changed
from academy.infrastructure.cache.keys import (
    note_id_key,
    note_student_course_key,
    note_student_list_key,
    note_student_test_key,
    note_test_course_key,
    note_test_list_key,
)
from academy.infrastructure.persistence.models.note import Note
from academy.infrastructure.persistence.repositories.base import BaseRepository
from academy.shared.utils.generators import generate_uuid

_NOTE = TypeAdapter(NoteResult)
_NOTES = TypeAdapter(list[NoteResult])

_UPDATABLE = ("score", "max_score", "is_absent", "comment", "entered_by", "entered_at")
# Columns overwritten when a (student_id, test_id) row already exists.
_UPSERT_COLUMNS = ("course_id", *_UPDATABLE)


def _to_result(n: Note) -> NoteResult:
    return NoteResult(
        id=n.id,
        student_id=n.student_id,
        test_id=n.test_id,
        course_id=n.course_id,
        score=n.score,
        max_score=n.max_score,
        is_absent=n.is_absent,
        comment=n.comment,
        entered_by=n.entered_by,
        entered_at=n.entered_at,
    )


class NoteRepository(BaseRepository[Note]):
    def __init__(
        self,
        db: AsyncSession,
        store: CacheAsideStore | None = None,
        sink: InvalidationSink | None = None,
        *,
        cache_ttl: int | None = None,
    ) -> None:
        super().__init__(db, Note, store, sink, cache_ttl=cache_ttl)

    async def get_by_id(self, note_id: str) -> NoteResult | None:
        async def load() -> NoteResult | None:
            row = await self._get_model(note_id)
            return _to_result(row) if row else None

        return await self._cached(note_id_key(note_id), load, _NOTE)

    async def get_by_student_and_test(
        self, student_id: str, test_id: str
    ) -> NoteResult | None:
        async def load() -> NoteResult | None:
            result = await self.db.execute(
                select(Note).where(Note.student_id == student_id, Note.test_id == test_id)
            )
            row = result.scalar_one_or_none()
            return _to_result(row) if row else None

        return await self._cached(note_student_test_key(student_id, test_id), load, _NOTE)

    async def _list(self, key: str, *criteria: Any) -> list[NoteResult]:
        async def load() -> list[NoteResult]:
            rows = await self._scalars(
                select(Note).where(*criteria).order_by(Note.created_at, Note.id)
            )
            return [_to_result(n) for n in rows]

        return await self._cached(key, load, _NOTES) or []

    async def list_by_student(self, student_id: str) -> list[NoteResult]:
        return await self._list(note_student_list_key(student_id), Note.student_id == student_id)

    async def list_by_test(self, test_id: str) -> list[NoteResult]:
        return await self._list(note_test_list_key(test_id), Note.test_id == test_id)

    async def list_by_student_and_course(
        self, student_id: str, course_id: str
    ) -> list[NoteResult]:
        return await self._list(
            note_student_course_key(student_id, course_id),
            Note.student_id == student_id,
            Note.course_id == course_id,
        )

    async def list_by_test_and_course(
        self, test_id: str, course_id: str
    ) -> list[NoteResult]:
        return await self._list(
            note_test_course_key(test_id, course_id),
            Note.test_id == test_id,
            Note.course_id == course_id,
        )

    async def count_by_test(self, test_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Note).where(Note.test_id == test_id)
        )
        return int(result.scalar_one())

    async def create(self, row: NoteUpsert) -> NoteResult:
        """Insert one note. Raises ConflictException when the student already has a
        note for the test.
        """
        note = Note(
            student_id=row.student_id,
            test_id=row.test_id,
            **{column: getattr(row, column) for column in _UPSERT_COLUMNS},
        )
        try:
            return _to_result(await self._add(note))
        except IntegrityError:
            raise ConflictException(
                "Note already exists for this student and test",
                details={"student_id": row.student_id, "test_id": row.test_id},
            )

    async def bulk_upsert(self, rows: list[NoteUpsert]) -> list[NoteResult]:
        """Insert or overwrite one note per (student_id, test_id) in one statement.

        Later rows for the same pair replace earlier ones (ON CONFLICT cannot
        touch a row twice). A note moved to another course also evicts its old
        (student, course) and (test, course) lookups.
        """
        by_pair = {(row.student_id, row.test_id): row for row in rows}
        if not by_pair:
            return []
        previous = await self.db.execute(
            select(Note.student_id, Note.test_id, Note.course_id).where(
                tuple_(Note.student_id, Note.test_id).in_(list(by_pair))
            )
        )
        affected = {tuple(r) for r in previous.all()}

        stmt = pg_insert(Note).values(
            [
                {
                    "id": generate_uuid(),
                    "student_id": row.student_id,
                    "test_id": row.test_id,
                    **{column: getattr(row, column) for column in _UPSERT_COLUMNS},
                }
                for row in by_pair.values()
            ]
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_note_student_test",
            set_={
                **{column: stmt.excluded[column] for column in _UPSERT_COLUMNS},
                "updated_at": func.now(),
            },
        )
        result = await self.db.scalars(
            stmt.returning(Note), execution_options={"populate_existing": True}
        )
        notes = [_to_result(n) for n in result.all()]

        affected.update((n.student_id, n.test_id, n.course_id) for n in notes)
        await self._invalidate(
            notes_changed(sorted(affected), note_ids=[n.id for n in notes])
        )
        return notes

    async def update(self, note_id: str, changes: dict[str, Any]) -> NoteResult | None:
        row = await self._get_model(note_id)
        if row is None:
            return None
        old = self._apply_changes(row, changes, _UPDATABLE)
        return _to_result(await self._save(row, old))

    async def delete(self, note_id: str) -> NoteResult | None:
        row = await self._get_model(note_id)
        if row is None:
            return None
        deleted = _to_result(row)
        await self._remove(row)
        return deleted

    async def _on_after_create(self, obj: Note) -> None:
        await self._invalidate(
            notes_changed([(obj.student_id, obj.test_id, obj.course_id)], note_ids=[obj.id])
        )

    async def _on_after_update(self, obj: Note, old: dict[str, Any]) -> None:
        await self._invalidate(
            notes_changed([(obj.student_id, obj.test_id, obj.course_id)], note_ids=[obj.id])
        )

    async def _on_after_delete(self, obj: Note) -> None:
        await self._invalidate(
            notes_changed([(obj.student_id, obj.test_id, obj.course_id)], note_ids=[obj.id])
        )
