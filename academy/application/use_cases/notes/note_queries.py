"""Note read use cases. Every id from the caller is checked against the scope's academy."""

from __future__ import annotations

from academy.application.dtos.note import NoteResult
from academy.application.interfaces.repositories import INoteRepository
from academy.application.services.ownership import OwnershipChecker
from academy.domain.exceptions import NotFoundException
from academy.domain.value_objects.scope import RequestScope


class NoteQueryService:
    """Cached note lookups by student, test, course and their pairs."""

    def __init__(self, note_repo: INoteRepository, ownership: OwnershipChecker) -> None:
        self._note_repo = note_repo
        self._ownership = ownership

    async def list_by_student(self, scope: RequestScope, student_id: str) -> list[NoteResult]:
        await self._ownership.require_student(scope.require_tenant(), student_id)
        return await self._note_repo.list_by_student(student_id)

    async def list_by_test(self, scope: RequestScope, test_id: str) -> list[NoteResult]:
        await self._ownership.require_test(scope.require_tenant(), test_id)
        return await self._note_repo.list_by_test(test_id)

    async def list_by_student_and_course(
        self, scope: RequestScope, student_id: str, course_id: str
    ) -> list[NoteResult]:
        tenant_id = scope.require_tenant()
        await self._ownership.require_student(tenant_id, student_id)
        await self._ownership.require_course(tenant_id, course_id)
        return await self._note_repo.list_by_student_and_course(student_id, course_id)

    async def list_by_test_and_course(
        self, scope: RequestScope, test_id: str, course_id: str
    ) -> list[NoteResult]:
        tenant_id = scope.require_tenant()
        await self._ownership.require_test(tenant_id, test_id)
        await self._ownership.require_course(tenant_id, course_id)
        return await self._note_repo.list_by_test_and_course(test_id, course_id)

    async def get_by_student_and_test(
        self, scope: RequestScope, student_id: str, test_id: str
    ) -> NoteResult:
        tenant_id = scope.require_tenant()
        await self._ownership.require_student(tenant_id, student_id)
        await self._ownership.require_test(tenant_id, test_id)
        note = await self._note_repo.get_by_student_and_test(student_id, test_id)
        if note is None:
            raise NotFoundException("note", f"{student_id}/{test_id}")
        return note
