from datetime import datetime

from pydantic import BaseModel


class ScreeningTask(BaseModel):
    role_id: str
    candidate_id: str


class ScoreResult(BaseModel):
    score_total: float
    score_breakdown: dict
    must_haves_satisfied: list[str]
    missing_must_haves: list[str]
    knockout: bool
    reasons: str
    flags: dict


class ScreeningOutcome(BaseModel):
    status: str  # completed | skipped
    role_id: str
    candidate_id: str
    score_total: float | None = None
    reason: str | None = None


class EnqueueResponse(BaseModel):
    role_id: str
    enqueued: int
    task_ids: list[str]


class ScreeningResponse(BaseModel):
    id: str
    role_id: str
    candidate_id: str
    score_total: float
    score_breakdown: dict
    must_haves_satisfied: list[str]
    missing_must_haves: list[str]
    knockout: bool
    reasons: str
    flags: dict
    created_at: datetime

    model_config = {"from_attributes": True}
