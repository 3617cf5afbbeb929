"""
Data models for the final-round interview.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Speaker(str, Enum):
    """Who said a turn. Values are the wire roles used by the backend."""
    CANDIDATE = "user"
    INTERVIEWER = "model"


@dataclass(frozen=True)
class Turn:
    """Represents a single conversation turn."""
    speaker: Speaker
    text: str

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.speaker.value, "parts": self.text}

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Turn":
        return cls(speaker=Speaker(data["role"]), text=str(data.get("parts") or ""))


@dataclass
class TranscriptionResult:
    text: str
    topics: List[Any] = field(default_factory=list)


@dataclass
class OpeningQuestion:
    text: str
    audio: Optional[bytes] = None


@dataclass
class FollowUpQuestion:
    text: str
    audio: Optional[bytes] = None
    is_closing: bool = False


@dataclass
class InterviewResult:
    """What a finished session leaves behind."""
    transcript: List[Turn] = field(default_factory=list)
    turn_count: int = 0
    final_state: str = ""
    error_message: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.final_state == "closed"
