from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Message value the voice agent uses for a turn that is still being spoken.
TYPING_PLACEHOLDER = "..."

OPERATOR_ROLES = frozenset({"operator", "user"})


class SessionState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    ENDING = "ending"
    ENDED = "ended"


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TranscriptEntry(BaseModel):
    """One dialogue turn as shown in the live transcript."""

    model_config = ConfigDict(frozen=True)

    role: str
    message: str
    timestamp: str = ""

    @property
    def is_typing(self) -> bool:
        return self.message == TYPING_PLACEHOLDER

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES


class StartSessionRequest(BaseModel):
    task_id: str
    operator_id: int
    user_email: str
    training: str
    practice: bool = False
    phone_number: Optional[str] = None

    def to_query_params(self) -> Dict[str, str]:
        """Query string for ``/ai/simulate/start``.

        Booleans are sent lowercase and ``phone_number`` is only included when
        the operator has one on file.
        """

        params = {
            "task_id": self.task_id,
            "operator_id": str(self.operator_id),
            "user_email": self.user_email,
            "training": self.training,
            "practice": "true" if self.practice else "false",
        }
        if self.phone_number:
            params["phone_number"] = self.phone_number
        return params


class StartSessionResponse(BaseModel):
    session_id: str
    attempt_id: str
    task_id: str
    attempt_number: int = 1
    training: str = ""
    dialogue: List[TranscriptEntry] = Field(default_factory=list)
    mode: Literal["new", "resume"] = "new"
    # Handle of the live voice call; absent when the gateway runs text-only.
    call_sid: Optional[str] = None
    # Report form saved during a previous run of the same attempt.
    form: Optional[Dict[str, Any]] = None

    @field_validator("dialogue", mode="before")
    @classmethod
    def _null_dialogue(cls, value: Any) -> Any:
        return value or []


class ChatResponse(BaseModel):
    reply: str
    session_id: str
    attempt_id: str
    dialogue_append: List[TranscriptEntry] = Field(default_factory=list)


class AppendMessageResponse(BaseModel):
    status: str
    appended: TranscriptEntry


class FormUpdateResponse(BaseModel):
    ok: bool
    form: Optional[Dict[str, Any]] = None


class EvaluationResult(BaseModel):
    """Final score returned by ``/ai/simulate/end``."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    attempt_id: str
    score: float
    status: Literal["completed", "failed"]
    # Named criterion -> percentage. Non-numeric entries are dropped.
    evaluation: Dict[str, float] = Field(default_factory=dict)

    @field_validator("evaluation", mode="before")
    @classmethod
    def _numeric_criteria(cls, value: Any) -> Dict[str, Any]:
        if not isinstance(value, dict):
            return {}
        return {
            key: score
            for key, score in value.items()
            if isinstance(score, (int, float)) and not isinstance(score, bool)
        }

    @property
    def passed(self) -> bool:
        return self.status == "completed"


class Session(BaseModel):
    """Identity and live status of one attempt run by this client."""

    task_id: str
    scenario_title: str
    state: SessionState = SessionState.IDLE
    session_id: Optional[str] = None
    attempt_id: Optional[str] = None
    attempt_number: Optional[int] = None
    mode: Optional[Literal["new", "resume"]] = None
    call_handle: Optional[str] = None
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    result: Optional[EvaluationResult] = None
