"""
Read-only shapes used by the monthly driver-report export.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

PLACEHOLDER = "-"


@dataclass(frozen=True)
class ReportRecord:
    id: str
    applicant_name: str = PLACEHOLDER
    driver_name: str = PLACEHOLDER
    referring_agency: str = PLACEHOLDER
    applicant_address: str = PLACEHOLDER
    work_timestamp: Optional[datetime] = None
    photo_refs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    content: bytes


@dataclass(frozen=True)
class PhotoOutcome:
    """Result of processing one photo: exactly one of content/error is set."""

    index: int
    ref: str
    content: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.content is not None and self.error is None

    @classmethod
    def success(cls, index: int, ref: str, content: bytes) -> "PhotoOutcome":
        return cls(index=index, ref=ref, content=content)

    @classmethod
    def failure(cls, index: int, ref: str, error: str) -> "PhotoOutcome":
        return cls(index=index, ref=ref, error=error or "unknown error")
