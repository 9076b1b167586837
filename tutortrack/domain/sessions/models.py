from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

UNKNOWN_STUDENT = "Unknown Student"


@dataclass(frozen=True)
class NormalizedSession:
    session_id: str
    start: datetime  # aware, UTC
    end: datetime  # aware, UTC
    duration_minutes: int
    rate: float  # per hour
    paid: bool
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    unassigned_name: Optional[str] = None

    @property
    def earnings(self) -> float:
        return (self.duration_minutes / 60) * self.rate

    @property
    def student_key(self) -> str:
        """Identity used for grouping: student id, else the unassigned booking name."""
        if self.student_id:
            return f"student:{self.student_id}"
        return f"unassigned:{self.unassigned_name or self.student_name or UNKNOWN_STUDENT}"

    @property
    def display_name(self) -> str:
        return self.student_name or self.unassigned_name or UNKNOWN_STUDENT


@dataclass(frozen=True)
class RejectedSession:
    session_id: Optional[str]
    reason: str


@dataclass(frozen=True)
class NormalizationReport:
    sessions: tuple[NormalizedSession, ...] = ()
    rejected: tuple[RejectedSession, ...] = field(default_factory=tuple)

    @property
    def complete(self) -> bool:
        return not self.rejected
