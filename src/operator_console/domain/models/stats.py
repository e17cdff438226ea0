from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryStats(_CamelModel):
    total_calls: int = 0
    average_score: float = 0
    last_call_date: Optional[str] = None


class HistoryCall(BaseModel):
    id: str
    name: str
    severity: Literal["critical", "high", "medium"]
    date: str
    time: str
    duration: str
    score: float
    operator_id: int
    scenario_id: Optional[str] = None
    task_id: Optional[str] = None
    attempt_id: Optional[str] = None
    created_at: Optional[str] = None


class CallHistory(BaseModel):
    stats: HistoryStats = Field(default_factory=HistoryStats)
    calls: List[HistoryCall] = Field(default_factory=list)


class SkillStat(BaseModel):
    id: str
    name: str
    current: float
    target: float


class StatsSummary(_CamelModel):
    total_calls: int = 0
    average_score: float = 0
    average_time: str = ""
    best_score: float = 0


class TopOperator(BaseModel):
    rank: int
    name: str
    organization: str
    score: float
    calls: int


class OrganizationStat(BaseModel):
    name: str
    users: int
    calls: int
    score: float


class SystemHealth(BaseModel):
    availability: float
    completion: float
    satisfaction: float


class SystemStats(_CamelModel):
    total_users: int
    active_users: int
    user_growth: float
    total_calls: int
    average_score: float
    call_growth: float
    top_operators: List[TopOperator] = Field(default_factory=list)
    organization_stats: List[OrganizationStat] = Field(default_factory=list)
    system_health: SystemHealth
