"""Score bounds shared by batch recording and single-note updates."""

from academy.domain.exceptions import BadRequestException, ForbiddenException


def check_score(score: float, max_score: float, *, student: str) -> None:
    """Reject a score outside [0, max_score].

    Negative values and a non-positive max_score are malformed input
    (BadRequest); a score above max_score violates grading policy (Forbidden).
    """
    if max_score <= 0:
        raise BadRequestException(
            f"Maximum score must be positive (got {max_score})", field="max_score"
        )
    if score < 0:
        raise BadRequestException(
            f"Score cannot be negative for student {student} (got {score})", field="score"
        )
    if score > max_score:
        raise ForbiddenException(
            f"Score {score} exceeds maximum score {max_score} for student {student}",
            {"student": student, "score": score, "max_score": max_score},
        )
