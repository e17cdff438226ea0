from __future__ import annotations

from typing import Iterable, List

from src.operator_console.domain.models.session import ConnectionStatus, EvaluationResult, TranscriptEntry
from src.operator_console.session.notifications import Notification

TYPING_INDICATOR = "[typing ...]"

# Display labels for the evaluation criteria the gateway scores. Criteria not
# listed here are not shown.
EVALUATION_LABELS = {
    "accuracy_of_collected_data": "Data accuracy",
    "operator_expertise": "Expertise",
    "operator_empathy": "Empathy",
    "response_speed": "Response speed",
    "notes_quality": "Notes quality",
}

_STATUS_TEXT = {
    ConnectionStatus.CONNECTED: "Voice Agent Active - Connected",
    ConnectionStatus.CONNECTING: "Waiting for connection...",
    ConnectionStatus.DISCONNECTED: "Voice Agent Disconnected",
}


def format_percent(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value)}%"
    return f"{value:.1f}%"


def render_entry(entry: TranscriptEntry) -> str:
    speaker = "Operator" if entry.is_operator else "Caller"
    text = TYPING_INDICATOR if entry.is_typing else entry.message
    return f"{speaker}: {text}"


def render_transcript(entries: Iterable[TranscriptEntry]) -> List[str]:
    return [render_entry(entry) for entry in entries]


def render_connection_status(status: ConnectionStatus) -> str:
    return _STATUS_TEXT[status]


def render_notification(notification: Notification) -> str:
    return f"[{notification.level.value.upper()}] {notification.message}"


def render_result(result: EvaluationResult) -> List[str]:
    lines = [
        "Successful" if result.passed else "Unsuccessful",
        f"Score: {format_percent(result.score)}",
    ]
    for key, value in result.evaluation.items():
        label = EVALUATION_LABELS.get(key)
        if label:
            lines.append(f"{label}: {format_percent(value)}")
    return lines
