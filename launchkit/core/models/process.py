"""
Transient result types — never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Candidate:
    """A possible runtime executable and where it came from.

    Lower ``source_rank`` means a more trusted source.
    """

    path: str
    source_rank: int


@dataclass
class ProcessResult:
    """Outcome of one external program run.

    ``exit_code`` is None when the process was killed on deadline.
    """

    exit_code: int | None
    timed_out: bool = False
    captured_stderr: str = ""
    captured_stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out
