"""Core constants: cache key layout and shared literal values.

Single source of truth for cache key structure. Used by
infrastructure.cache.keys and the invalidation plans.
"""

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Dimension markers. A bare marker means "dimension not used by the query";
# MARKER + "=" + value carries the scope value.
CACHE_TENANT_MARKER = "t"
CACHE_YEAR_MARKER = "y"
CACHE_DIMENSION_ASSIGN = "="

# Characters percent-encoded inside key components: the escape character
# itself, the separator, and Redis SCAN MATCH glob syntax.
CACHE_KEY_ESCAPE_CHAR = "%"
CACHE_KEY_ESCAPED_CHARS = CACHE_KEY_ESCAPE_CHAR + CACHE_KEY_SEP + "*?[]\\"

# Secondary-index namespace (IndexedPatternInvalidator)
CACHE_INDEX_PREFIX = "idx"

# Entity kinds
ENTITY_ACADEMIC_YEAR = "academic_year"
ENTITY_CLASS = "class"
ENTITY_CLASS_YEAR = "class_year"
ENTITY_COURSE = "course"
ENTITY_COURSE_CLASS = "course_class"
ENTITY_STUDENT = "student"
ENTITY_ENROLLMENT = "enrollment"
ENTITY_TRIMESTER = "trimester"
ENTITY_TEST = "test"
ENTITY_NOTE = "note"

# Identifier kinds
ID_BY_ID = "id"
ID_BY_CODE = "code"
ID_BY_REGISTRATION = "registration"
ID_ALL = "all"
ID_ACTIVE = "active"
ID_CATEGORY = "category"
ID_CURRENT = "current"
ID_ACADEMIC_YEAR = "academic_year"
ID_TRIMESTER = "trimester"
ID_STUDENT = "student"
ID_TEST = "test"
ID_STUDENT_TEST = "student_test"
ID_STUDENT_COURSE = "student_course"
ID_TEST_COURSE = "test_course"
ID_CLASS = "class"
ID_CLASS_YEAR = "class_year"

# Placeholder identifier value for tenant-wide collections ("all", "active").
LIST_ALL = "list"

# Grading
DEFAULT_MAX_SCORE = 20
