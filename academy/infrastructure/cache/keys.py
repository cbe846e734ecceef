"""Scoped cache key builders. Single place for key format.

Layout: ``t[=<tenant>]:<entity>:<identifier_kind>:<value>:y[=<academic_year>]``.

The tenant segment comes first so every key of a tenant (or of one entity kind
within a tenant) shares a segment-aligned prefix usable for pattern
invalidation. A bare ``t`` / ``y`` marks a dimension the underlying query does
not use; ``t=`` / ``y=`` carry the scope value. Components are percent-encoded
(``%``, the separator and glob metacharacters), so any domain value can be
used, a key always has exactly five segments and the mapping is injective.
"""

from academy.core.constants import (
    CACHE_DIMENSION_ASSIGN,
    CACHE_INDEX_PREFIX,
    CACHE_KEY_ESCAPE_CHAR,
    CACHE_KEY_ESCAPED_CHARS,
    CACHE_KEY_SEP,
    CACHE_TENANT_MARKER,
    CACHE_YEAR_MARKER,
    ENTITY_ACADEMIC_YEAR,
    ENTITY_CLASS,
    ENTITY_CLASS_YEAR,
    ENTITY_COURSE,
    ENTITY_COURSE_CLASS,
    ENTITY_ENROLLMENT,
    ENTITY_NOTE,
    ENTITY_STUDENT,
    ENTITY_TEST,
    ENTITY_TRIMESTER,
    ID_ACADEMIC_YEAR,
    ID_ACTIVE,
    ID_ALL,
    ID_BY_CODE,
    ID_BY_ID,
    ID_BY_REGISTRATION,
    ID_CATEGORY,
    ID_CLASS,
    ID_CLASS_YEAR,
    ID_CURRENT,
    ID_STUDENT,
    ID_STUDENT_COURSE,
    ID_STUDENT_TEST,
    ID_TEST,
    ID_TEST_COURSE,
    ID_TRIMESTER,
    LIST_ALL,
)


def _escape_table(chars: str) -> dict[int, str]:
    return {ord(c): f"{CACHE_KEY_ESCAPE_CHAR}{ord(c):02X}" for c in chars}


_COMPONENT_ESCAPES = _escape_table(CACHE_KEY_ESCAPED_CHARS)


def encode_component(value: str, name: str = "value") -> str:
    """Return value percent-encoded for use as one key segment.

    ``MATH[101]`` becomes ``MATH%5B101%5D``, ``Langues: FR`` becomes
    ``Langues%3A FR``. Encoding ``%`` itself keeps the mapping reversible.

    Raises:
        ValueError: If value is not a non-empty string.
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Cache key component {name!r} must be a non-empty string")
    return value.translate(_COMPONENT_ESCAPES)


def _dimension(marker: str, value: str | None, name: str) -> str:
    if value is None:
        return marker
    return f"{marker}{CACHE_DIMENSION_ASSIGN}{encode_component(value, name)}"


def scoped_key(
    entity_kind: str,
    identifier_kind: str,
    value: str,
    *,
    tenant_id: str | None = None,
    academic_year_id: str | None = None,
) -> str:
    """Cache key for one cached read.

    Pass exactly the scope dimensions the underlying query filters on:
    omitting one the query uses leaks data across tenants or years, adding one
    it does not use splits identical data over several keys.
    """
    return CACHE_KEY_SEP.join(
        (
            _dimension(CACHE_TENANT_MARKER, tenant_id, "tenant_id"),
            encode_component(entity_kind, "entity_kind"),
            encode_component(identifier_kind, "identifier_kind"),
            encode_component(value, "value"),
            _dimension(CACHE_YEAR_MARKER, academic_year_id, "academic_year_id"),
        )
    )


def scoped_prefix(
    entity_kind: str | None = None,
    identifier_kind: str | None = None,
    value: str | None = None,
    *,
    tenant_id: str | None = None,
) -> str:
    """Segment-aligned key prefix for pattern invalidation (always ends with the separator).

    Narrower components require the broader ones: identifier_kind needs
    entity_kind, value needs identifier_kind.
    """
    if identifier_kind is not None and entity_kind is None:
        raise ValueError("identifier_kind requires entity_kind")
    if value is not None and identifier_kind is None:
        raise ValueError("value requires identifier_kind")
    parts = [_dimension(CACHE_TENANT_MARKER, tenant_id, "tenant_id")]
    for component, name in (
        (entity_kind, "entity_kind"),
        (identifier_kind, "identifier_kind"),
        (value, "value"),
    ):
        if component is None:
            break
        parts.append(encode_component(component, name))
    return CACHE_KEY_SEP.join(parts) + CACHE_KEY_SEP


def key_prefixes(key: str) -> list[str]:
    """Return every segment-aligned prefix of a scoped key, broadest first.

    Used by the secondary index: a key is registered under each of these so
    any scoped_prefix() pattern finds it.
    """
    segments = key.split(CACHE_KEY_SEP)
    return [
        CACHE_KEY_SEP.join(segments[:end]) + CACHE_KEY_SEP
        for end in range(1, len(segments))
    ]


def index_key(prefix: str) -> str:
    """Key of the secondary-index set that lists cached keys under prefix."""
    if not prefix.endswith(CACHE_KEY_SEP):
        raise ValueError(f"Index prefix must end with {CACHE_KEY_SEP!r}: {prefix!r}")
    return f"{CACHE_INDEX_PREFIX}{CACHE_KEY_SEP}{prefix}"


COMPOSITE_SEP = "+"
_COMPOSITE_ESCAPES = _escape_table(CACHE_KEY_ESCAPE_CHAR + COMPOSITE_SEP)


def composite_value(*parts: str) -> str:
    """Join several identifiers into one key value (e.g. student + test).

    COMPOSITE_SEP inside a part is percent-encoded so the join stays unambiguous.
    """
    for part in parts:
        if not isinstance(part, str) or not part:
            raise ValueError(f"Composite key part {part!r} must be a non-empty string")
    return COMPOSITE_SEP.join(part.translate(_COMPOSITE_ESCAPES) for part in parts)


# ---- Per-entity keys --------------------------------------------------------
# Lookups by globally unique id are tenant-agnostic (the caller checks
# ownership on the loaded value); lookups by human-facing code and tenant-wide
# lists carry the tenant.


def academic_year_id_key(academic_year_id: str) -> str:
    return scoped_key(ENTITY_ACADEMIC_YEAR, ID_BY_ID, academic_year_id)


def academic_year_current_key(academy_id: str) -> str:
    return scoped_key(ENTITY_ACADEMIC_YEAR, ID_CURRENT, "true", tenant_id=academy_id)


def academic_year_list_key(academy_id: str) -> str:
    return scoped_key(ENTITY_ACADEMIC_YEAR, ID_ALL, LIST_ALL, tenant_id=academy_id)


def class_id_key(class_id: str) -> str:
    return scoped_key(ENTITY_CLASS, ID_BY_ID, class_id)


def class_code_key(academy_id: str, code: str) -> str:
    return scoped_key(ENTITY_CLASS, ID_BY_CODE, code, tenant_id=academy_id)


def class_list_key(academy_id: str, *, active_only: bool) -> str:
    kind = ID_ACTIVE if active_only else ID_ALL
    return scoped_key(ENTITY_CLASS, kind, LIST_ALL, tenant_id=academy_id)


def class_year_id_key(class_year_id: str) -> str:
    return scoped_key(ENTITY_CLASS_YEAR, ID_BY_ID, class_year_id)


def class_year_for_class_key(class_id: str, academic_year_id: str) -> str:
    """The class year of a class in one academic year."""
    return scoped_key(
        ENTITY_CLASS_YEAR, ID_CLASS, class_id, academic_year_id=academic_year_id
    )


def class_year_by_class_list_key(class_id: str) -> str:
    """Every class year of a class, across academic years."""
    return scoped_key(ENTITY_CLASS_YEAR, ID_CLASS, class_id)


def class_year_list_key(academy_id: str, academic_year_id: str) -> str:
    """Class years the academy opened for one academic year."""
    return scoped_key(
        ENTITY_CLASS_YEAR,
        ID_ALL,
        LIST_ALL,
        tenant_id=academy_id,
        academic_year_id=academic_year_id,
    )


def course_id_key(course_id: str) -> str:
    return scoped_key(ENTITY_COURSE, ID_BY_ID, course_id)


def course_code_key(academy_id: str, code: str) -> str:
    return scoped_key(ENTITY_COURSE, ID_BY_CODE, code, tenant_id=academy_id)


def course_list_key(academy_id: str, *, active_only: bool) -> str:
    kind = ID_ACTIVE if active_only else ID_ALL
    return scoped_key(ENTITY_COURSE, kind, LIST_ALL, tenant_id=academy_id)


def course_category_key(academy_id: str, category: str) -> str:
    return scoped_key(ENTITY_COURSE, ID_CATEGORY, category, tenant_id=academy_id)


def student_id_key(student_id: str) -> str:
    return scoped_key(ENTITY_STUDENT, ID_BY_ID, student_id)


def student_registration_key(academy_id: str, registration_number: str) -> str:
    return scoped_key(
        ENTITY_STUDENT, ID_BY_REGISTRATION, registration_number, tenant_id=academy_id
    )


def student_list_key(academy_id: str) -> str:
    return scoped_key(ENTITY_STUDENT, ID_ALL, LIST_ALL, tenant_id=academy_id)


def student_year_list_key(academy_id: str, academic_year_id: str) -> str:
    """Students of the academy inscribed for one academic year."""
    return scoped_key(
        ENTITY_STUDENT,
        ID_ALL,
        LIST_ALL,
        tenant_id=academy_id,
        academic_year_id=academic_year_id,
    )


def enrollment_class_year_key(student_id: str, academic_year_id: str) -> str:
    """Class year of a student's confirmed inscription (query filters on the year)."""
    return scoped_key(
        ENTITY_ENROLLMENT, ID_STUDENT, student_id, academic_year_id=academic_year_id
    )


def enrollment_list_key(class_year_id: str) -> str:
    """Inscriptions of a class year."""
    return scoped_key(ENTITY_ENROLLMENT, ID_CLASS_YEAR, class_year_id)


def course_class_courses_key(class_year_id: str) -> str:
    """Ids of courses actively taught in a class year."""
    return scoped_key(ENTITY_COURSE_CLASS, ID_CLASS_YEAR, class_year_id)


def trimester_id_key(trimester_id: str) -> str:
    return scoped_key(ENTITY_TRIMESTER, ID_BY_ID, trimester_id)


def trimester_list_key(academic_year_id: str) -> str:
    return scoped_key(ENTITY_TRIMESTER, ID_ACADEMIC_YEAR, academic_year_id)


def test_id_key(test_id: str) -> str:
    return scoped_key(ENTITY_TEST, ID_BY_ID, test_id)


def test_list_key(trimester_id: str) -> str:
    return scoped_key(ENTITY_TEST, ID_TRIMESTER, trimester_id)


def note_id_key(note_id: str) -> str:
    return scoped_key(ENTITY_NOTE, ID_BY_ID, note_id)


def note_student_test_key(student_id: str, test_id: str) -> str:
    return scoped_key(ENTITY_NOTE, ID_STUDENT_TEST, composite_value(student_id, test_id))


def note_student_course_key(student_id: str, course_id: str) -> str:
    return scoped_key(
        ENTITY_NOTE, ID_STUDENT_COURSE, composite_value(student_id, course_id)
    )


def note_test_course_key(test_id: str, course_id: str) -> str:
    return scoped_key(ENTITY_NOTE, ID_TEST_COURSE, composite_value(test_id, course_id))


def note_student_list_key(student_id: str) -> str:
    return scoped_key(ENTITY_NOTE, ID_STUDENT, student_id)


def note_test_list_key(test_id: str) -> str:
    return scoped_key(ENTITY_NOTE, ID_TEST, test_id)
