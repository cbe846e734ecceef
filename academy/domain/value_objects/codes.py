"""Human-facing code value objects."""

import re
from dataclasses import dataclass

from academy.domain.exceptions import BadRequestException

_TEST_CODE_RE = re.compile(r"^Trim(\d+)-(\d+)$")


@dataclass(frozen=True)
class TestCode:
    """Positional test code ``Trim{N}-{M}``.

    Designates the M-th test (ordered by date) of the N-th trimester (ordered
    by ``order``) of an academic year. Both positions are 1-based.
    """

    __test__ = False

    trimester_position: int
    test_position: int

    @classmethod
    def parse(cls, code: str) -> "TestCode":
        """Parse a test code.

        Raises:
            BadRequestException: If the code is not of the form Trim{N}-{M} with N, M >= 1.
        """
        match = _TEST_CODE_RE.fullmatch(code.strip()) if code else None
        if match is None:
            raise BadRequestException(
                f"Invalid test code '{code}': expected format Trim{{N}}-{{M}} (e.g. Trim1-2)",
                field="test_code",
            )
        trimester_position, test_position = int(match.group(1)), int(match.group(2))
        if trimester_position < 1 or test_position < 1:
            raise BadRequestException(
                f"Invalid test code '{code}': positions start at 1",
                field="test_code",
            )
        return cls(trimester_position, test_position)

    def __str__(self) -> str:
        return f"Trim{self.trimester_position}-{self.test_position}"
