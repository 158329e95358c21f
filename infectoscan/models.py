from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Urgency).index(self)

    @classmethod
    def parse(cls, tag: str) -> Optional["Urgency"]:
        """Known tier for a tag, or None for anything outside the enum."""
        known = tuple(map(lambda u: u.value, cls))
        match tag.strip().lower():
            case value if value in known:
                return cls(value)
            case _:
                return None


@dataclass(frozen=True)
class CapturedImage:
    data: bytes
    mime_type: str
    source: str


@dataclass(frozen=True)
class AnalysisRequest:
    image_bytes: bytes
    mime_type: str


@dataclass(frozen=True)
class AnalysisResult:
    diagnosis: str
    differential_diagnosis: tuple[str, ...]
    reasoning: str
    recommendations: tuple[str, ...]
    urgency: str

    @property
    def urgency_tier(self) -> Optional[Urgency]:
        return Urgency.parse(self.urgency)


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    captured_at: datetime
    source_image: CapturedImage
    result: AnalysisResult
