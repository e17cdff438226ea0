from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class ScenarioStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ScenarioPayload(BaseModel):
    """Body for scenario create/update. Unset fields are not sent."""

    title: Optional[str] = None
    caller: Optional[str] = None
    age: Optional[int] = None
    duration: Optional[str] = None
    symptoms: Optional[List[str]] = None
    severity: Optional[Severity] = None
    status: Optional[ScenarioStatus] = None
    situation: Optional[str] = None
    patient_state: Optional[str] = None
    hidden_cause: Optional[str] = None
    caller_behavior: Optional[str] = None
    dispatcher_goal: Optional[str] = None
    key_facts: Optional[str] = None
    response_style: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None


class ScenarioResponse(ScenarioPayload):
    id: str
    title: str
    caller: str
    age: int
    duration: str
    symptoms: List[str] = Field(default_factory=list)
    severity: Severity
    status: ScenarioStatus


class TaskStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"


class TaskProgress(BaseModel):
    completed: int = 0
    total: int = 0


class TaskPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    scenario_id: Optional[str] = None
    deadline: Optional[str] = None
    operator_ids: Optional[List[int]] = None
    min_score: Optional[int] = None
    max_attempts: Optional[int] = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    scenario_id: Optional[str] = None
    deadline: Optional[str] = None
    operator_ids: List[int] = Field(default_factory=list)
    min_score: int = 0
    max_attempts: int = 0
    status: TaskStatus = TaskStatus.ACTIVE
    progress: TaskProgress = Field(default_factory=TaskProgress)


class TaskAttempts(BaseModel):
    current: int = 0
    total: int = 0
    remaining: int = 0


class DashboardTask(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    status: Literal["pending", "progress", "completed"]
    status_label: str = ""
    status_text: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[str] = None
    days_left: Optional[int] = None
    min_score: Optional[float] = None
    current_score: Optional[float] = None
    completed_date: Optional[str] = None
    score: Optional[float] = None
    attempts: TaskAttempts = Field(default_factory=TaskAttempts)
    button_label: Optional[str] = None


class DashboardStats(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    pending: int = 0
    completed: int = 0
    success_rate: str = ""


class TaskDashboard(BaseModel):
    stats: DashboardStats = Field(default_factory=DashboardStats)
    tasks: List[DashboardTask] = Field(default_factory=list)


class TaskStartResponse(BaseModel):
    mode: Literal["new", "resume"]
    attempt_id: str
    scenario_title: str


class SystemSection(BaseModel):
    system_name: Optional[str] = None
    support_email: Optional[str] = None
    max_session_duration: Optional[int] = None


class NotificationSection(BaseModel):
    email_notifications: Optional[bool] = None
    weekly_reports: Optional[bool] = None
    performance_alerts: Optional[bool] = None


class SecuritySection(BaseModel):
    min_password_length: Optional[int] = None
    session_timeout: Optional[int] = None
    two_factor_auth: Optional[bool] = None


class TrainingSection(BaseModel):
    min_passing_score: Optional[int] = None
    scenario_rotation: Optional[bool] = None
    auto_evaluation: Optional[bool] = None


class EmailSection(BaseModel):
    smtp_server: Optional[str] = None
    smtp_port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None


class SystemSettings(BaseModel):
    system: Optional[SystemSection] = None
    notifications: Optional[NotificationSection] = None
    security: Optional[SecuritySection] = None
    training: Optional[TrainingSection] = None
    email: Optional[EmailSection] = None
