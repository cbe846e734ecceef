"""Note (grade) use cases: batch recording, queries, single-note maintenance."""

from academy.application.use_cases.notes.note_maintenance import NoteMaintenanceService
from academy.application.use_cases.notes.note_queries import NoteQueryService
from academy.application.use_cases.notes.record_grades import GradeRecordingService

__all__ = ["GradeRecordingService", "NoteMaintenanceService", "NoteQueryService"]
