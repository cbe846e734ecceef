"""What to evict when an entity changes.

Each function returns the InvalidationSet for one kind of mutation. Functions
that take ``old`` and ``new`` values cover reassignments (a course moved to
another category, a student given a new registration number): both the old
and the new lookups are evicted.
"""

from __future__ import annotations

from collections.abc import Iterable

from academy.core.constants import (
    ENTITY_CLASS,
    ENTITY_COURSE,
    ENTITY_NOTE,
    ENTITY_STUDENT,
    ENTITY_TEST,
    ID_ACTIVE,
    ID_ALL,
    ID_CATEGORY,
    ID_STUDENT,
    ID_TEST,
    ID_TRIMESTER,
)
from academy.infrastructure.cache import keys
from academy.infrastructure.cache.invalidation import InvalidationSet


def _present(*values: str | None) -> list[str]:
    return sorted({v for v in values if v})


def academic_year_changed(academy_id: str, *academic_year_ids: str) -> InvalidationSet:
    """Create, update or current-flag change of one or more years of a tenant."""
    return InvalidationSet.of(
        keys=[
            keys.academic_year_current_key(academy_id),
            keys.academic_year_list_key(academy_id),
            *(keys.academic_year_id_key(year_id) for year_id in academic_year_ids),
        ]
    )


def school_class_changed(
    academy_id: str,
    class_id: str,
    *,
    old_code: str | None = None,
    new_code: str | None = None,
) -> InvalidationSet:
    return InvalidationSet.of(
        keys=[
            keys.class_id_key(class_id),
            *(keys.class_code_key(academy_id, code) for code in _present(old_code, new_code)),
        ],
        patterns=[
            keys.scoped_prefix(ENTITY_CLASS, ID_ALL, tenant_id=academy_id),
            keys.scoped_prefix(ENTITY_CLASS, ID_ACTIVE, tenant_id=academy_id),
        ],
    )


def course_changed(
    academy_id: str,
    course_id: str,
    *,
    old_code: str | None = None,
    new_code: str | None = None,
    old_category: str | None = None,
    new_category: str | None = None,
) -> InvalidationSet:
    """Course create/update/delete; both old and new category lists are evicted."""
    return InvalidationSet.of(
        keys=[
            keys.course_id_key(course_id),
            *(keys.course_code_key(academy_id, code) for code in _present(old_code, new_code)),
        ],
        patterns=[
            keys.scoped_prefix(ENTITY_COURSE, ID_ALL, tenant_id=academy_id),
            keys.scoped_prefix(ENTITY_COURSE, ID_ACTIVE, tenant_id=academy_id),
            *(
                keys.scoped_prefix(ENTITY_COURSE, ID_CATEGORY, category, tenant_id=academy_id)
                for category in _present(old_category, new_category)
            ),
        ],
    )


def student_changed(
    academy_id: str,
    student_id: str,
    *,
    old_registration_number: str | None = None,
    new_registration_number: str | None = None,
) -> InvalidationSet:
    """Student create/update; the tenant list and every per-year list go."""
    return InvalidationSet.of(
        keys=[
            keys.student_id_key(student_id),
            *(
                keys.student_registration_key(academy_id, number)
                for number in _present(old_registration_number, new_registration_number)
            ),
        ],
        patterns=[keys.scoped_prefix(ENTITY_STUDENT, ID_ALL, tenant_id=academy_id)],
    )


def class_year_changed(
    academy_id: str, class_year_id: str, class_id: str, academic_year_id: str
) -> InvalidationSet:
    return InvalidationSet.of(
        keys=[
            keys.class_year_id_key(class_year_id),
            keys.class_year_for_class_key(class_id, academic_year_id),
            keys.class_year_by_class_list_key(class_id),
            keys.class_year_list_key(academy_id, academic_year_id),
        ]
    )


def enrollment_changed(
    student_id: str,
    academic_year_id: str,
    *,
    academy_id: str | None = None,
    class_year_ids: Iterable[str] = (),
) -> InvalidationSet:
    """Inscription written for a student and year.

    class_year_ids are the class years whose inscription lists changed (old and
    new class year on a move); academy_id, when known, evicts the per-year
    student list.
    """
    exact = {keys.enrollment_class_year_key(student_id, academic_year_id)}
    exact.update(keys.enrollment_list_key(cy) for cy in class_year_ids if cy)
    if academy_id:
        exact.add(keys.student_year_list_key(academy_id, academic_year_id))
    return InvalidationSet.of(keys=exact)


def course_class_changed(class_year_id: str) -> InvalidationSet:
    return InvalidationSet.of(keys=[keys.course_class_courses_key(class_year_id)])


def school_class_removed(
    academy_id: str,
    class_id: str,
    code: str,
    *,
    class_years: Iterable[tuple[str, str]] = (),
    inscriptions: Iterable[tuple[str, str, str]] = (),
) -> InvalidationSet:
    """Class delete with everything the database cascades along with it.

    class_years are (class_year_id, academic_year_id) pairs of the class;
    inscriptions are (student_id, academic_year_id, class_year_id) rows held
    by those class years.
    """
    invalidation = school_class_changed(academy_id, class_id, old_code=code)
    for class_year_id, academic_year_id in class_years:
        invalidation = (
            invalidation
            | class_year_changed(academy_id, class_year_id, class_id, academic_year_id)
            | course_class_changed(class_year_id)
        )
    for student_id, academic_year_id, class_year_id in inscriptions:
        invalidation |= enrollment_changed(
            student_id,
            academic_year_id,
            academy_id=academy_id,
            class_year_ids=(class_year_id,),
        )
    return invalidation


def course_removed(
    academy_id: str,
    course_id: str,
    *,
    code: str,
    category: str | None = None,
    notes: Iterable[tuple[str, str, str]] = (),
    class_year_ids: Iterable[str] = (),
) -> InvalidationSet:
    """Course delete with the notes and course-classes cascaded along with it.

    notes are (note_id, student_id, test_id) rows of the course; class_year_ids
    the class years that taught it.
    """
    notes = list(notes)
    invalidation = course_changed(
        academy_id, course_id, old_code=code, old_category=category
    ) | notes_changed(
        ((student_id, test_id, course_id) for _, student_id, test_id in notes),
        note_ids=(note_id for note_id, _, _ in notes),
    )
    for class_year_id in class_year_ids:
        invalidation |= course_class_changed(class_year_id)
    return invalidation


def trimester_changed(
    trimester_id: str, academic_year_id: str, *, deleted: bool = False
) -> InvalidationSet:
    """Trimester changes also reorder Trim{N}-{M} resolution for the year."""
    invalidation = InvalidationSet.of(
        keys=[
            keys.trimester_id_key(trimester_id),
            keys.trimester_list_key(academic_year_id),
        ]
    )
    if deleted:
        invalidation = invalidation.with_patterns(
            keys.scoped_prefix(ENTITY_TEST, ID_TRIMESTER, trimester_id)
        )
    return invalidation


def academic_test_changed(
    test_id: str,
    *,
    old_trimester_id: str | None = None,
    new_trimester_id: str | None = None,
    deleted: bool = False,
) -> InvalidationSet:
    invalidation = InvalidationSet.of(
        keys=[
            keys.test_id_key(test_id),
            *(
                keys.test_list_key(trimester_id)
                for trimester_id in _present(old_trimester_id, new_trimester_id)
            ),
        ]
    )
    if deleted:
        invalidation = invalidation.with_patterns(
            keys.scoped_prefix(ENTITY_NOTE, ID_TEST, test_id)
        )
    return invalidation


def notes_changed(
    affected: Iterable[tuple[str, str, str]],
    *,
    note_ids: Iterable[str] = (),
) -> InvalidationSet:
    """Notes written or deleted for (student_id, test_id, course_id) triples.

    Evicts the (student, test), (student, course) and (test, course) lookups of
    every triple plus the per-student and per-test list families.
    """
    exact: set[str] = {keys.note_id_key(note_id) for note_id in note_ids}
    patterns: set[str] = set()
    for student_id, test_id, course_id in affected:
        exact.add(keys.note_student_test_key(student_id, test_id))
        exact.add(keys.note_student_course_key(student_id, course_id))
        exact.add(keys.note_test_course_key(test_id, course_id))
        patterns.add(keys.scoped_prefix(ENTITY_NOTE, ID_STUDENT, student_id))
        patterns.add(keys.scoped_prefix(ENTITY_NOTE, ID_TEST, test_id))
    return InvalidationSet.of(keys=exact, patterns=patterns)
