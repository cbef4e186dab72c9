from pydantic import BaseModel, Field


class BatchIndexRequest(BaseModel):
    candidate_ids: list[str] = Field(min_length=1)


class BatchIndexResult(BaseModel):
    successful: int = 0
    failed: int = 0


class IndexScheduledResponse(BaseModel):
    task_id: str
    candidates: int


class CandidateSearchResult(BaseModel):
    candidate_id: str
    full_name: str
    headline: str | None = None
    similarity: float
