"""Update or delete a single existing note (same score policy as batch recording)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from academy.application.dtos.note import NoteResult
from academy.application.interfaces.repositories import INoteRepository
from academy.application.services.ownership import OwnershipChecker
from academy.application.use_cases.notes.score_policy import check_score
from academy.domain.exceptions import NotFoundException
from academy.domain.value_objects.scope import RequestScope
from academy.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class NoteMaintenanceService:
    def __init__(
        self,
        note_repo: INoteRepository,
        ownership: OwnershipChecker,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._note_repo = note_repo
        self._ownership = ownership
        self._clock = clock

    async def _require_note(self, tenant_id: str, note_id: str) -> NoteResult:
        note = await self._note_repo.get_by_id(note_id)
        if note is None:
            raise NotFoundException("note", note_id)
        try:
            await self._ownership.require_student(tenant_id, note.student_id)
        except NotFoundException:
            raise NotFoundException("note", note_id) from None
        return note

    async def update_note(
        self,
        scope: RequestScope,
        user_id: str,
        note_id: str,
        *,
        score: float | None = None,
        max_score: float | None = None,
        is_absent: bool | None = None,
        comment: str | None = None,
    ) -> NoteResult:
        """Change score, maximum, absence or comment of a note.

        Fields left as None keep their value. The resulting score must still
        lie within [0, max_score].
        """
        tenant_id = scope.require_tenant()
        note = await self._require_note(tenant_id, note_id)
        changes: dict[str, Any] = {
            name: value
            for name, value in (
                ("score", score),
                ("max_score", max_score),
                ("is_absent", is_absent),
                ("comment", comment),
            )
            if value is not None
        }
        if not changes:
            return note
        check_score(
            changes.get("score", note.score),
            changes.get("max_score", note.max_score),
            student=note.student_id,
        )
        changes["entered_by"] = user_id
        changes["entered_at"] = self._clock()
        updated = await self._note_repo.update(note_id, changes)
        if updated is None:
            raise NotFoundException("note", note_id)
        logger.info("Note %s updated by %s", note_id, user_id)
        return updated

    async def delete_note(self, scope: RequestScope, note_id: str) -> NoteResult:
        tenant_id = scope.require_tenant()
        await self._require_note(tenant_id, note_id)
        deleted = await self._note_repo.delete(note_id)
        if deleted is None:
            raise NotFoundException("note", note_id)
        logger.info("Note %s deleted", note_id)
        return deleted
