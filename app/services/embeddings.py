import math
from typing import Protocol

import structlog
from openai import OpenAI

from app.core.config import get_settings, is_embeddings_configured
from app.schemas.indexing import BatchIndexResult, CandidateSearchResult

logger = structlog.get_logger()


class Embedder(Protocol):
    model: str

    def embed(self, text: str) -> list[float]: ...


class OpenAIEmbedder:
    def __init__(self, client: OpenAI, model: str = "text-embedding-3-small"):
        self.client = client
        self.model = model

    def embed(self, text: str) -> list[float]:
        response = self.client.embeddings.create(model=self.model, input=text)
        return list(response.data[0].embedding)


def get_embedder() -> Embedder | None:
    if not is_embeddings_configured():
        return None
    settings = get_settings()
    return OpenAIEmbedder(OpenAI(api_key=settings.OPENAI_API_KEY), model=settings.EMBEDDING_MODEL)


def build_candidate_text(candidate, skill_names, experiences, education, projects) -> str:
    """Flatten a profile into the text that gets embedded.

    Section order is fixed so the same profile always yields the same text.
    Sections without data are left out entirely.
    """
    parts = []

    if candidate.headline:
        parts.append(candidate.headline)
    if candidate.summary:
        parts.append(candidate.summary)

    location = [p for p in (candidate.city, candidate.country) if p]
    if location:
        parts.append(f"Location: {', '.join(location)}")

    skills = ", ".join(name for name in skill_names if name)
    if skills:
        parts.append(f"Skills: {skills}")

    experience_lines = []
    for exp in experiences:
        line = [exp.title] if exp.title else []
        if exp.company:
            line.append(f"at {exp.company}")
        if exp.bullets:
            line.append(" ".join(exp.bullets))
        if line:
            experience_lines.append(" ".join(line))
    if experience_lines:
        parts.append(f"Experience: {'; '.join(experience_lines)}")

    education_lines = []
    for edu in education:
        line = []
        if edu.qualification:
            line.append(edu.qualification)
        if edu.institution:
            line.append(f"from {edu.institution}")
        if edu.location:
            line.append(f"in {edu.location}")
        if line:
            education_lines.append(" ".join(line))
    if education_lines:
        parts.append(f"Education: {'; '.join(education_lines)}")

    project_lines = []
    for proj in projects:
        line = [p for p in (proj.name, proj.what, proj.impact) if p]
        if line:
            project_lines.append(" - ".join(line))
    if project_lines:
        parts.append(f"Projects: {'; '.join(project_lines)}")

    return "\n".join(parts)


def index_candidate(store, embedder: Embedder, candidate_id: str) -> bool:
    logger.info("embedding_start", candidate_id=candidate_id)
    try:
        candidate = store.get_candidate(candidate_id)
        if candidate is None:
            logger.error("embedding_candidate_not_found", candidate_id=candidate_id)
            return False

        text = build_candidate_text(
            candidate,
            store.list_skill_names(candidate_id),
            store.list_experiences(candidate_id),
            store.list_education(candidate_id),
            store.list_projects(candidate_id),
        )
        if not text.strip():
            logger.warning("embedding_skip_empty_text", candidate_id=candidate_id)
            return False

        vector = embedder.embed(text)
        store.upsert_embedding(candidate_id, vector, model=getattr(embedder, "model", None))
    except Exception as e:
        store.rollback()
        logger.error("embedding_error", candidate_id=candidate_id, error=str(e))
        return False

    logger.info("embedding_done", candidate_id=candidate_id, chars=len(text), dimensions=len(vector))
    return True


def batch_index_candidates(store, embedder: Embedder, candidate_ids: list[str]) -> BatchIndexResult:
    logger.info("batch_index_start", count=len(candidate_ids))
    result = BatchIndexResult()

    for candidate_id in candidate_ids:
        if index_candidate(store, embedder, candidate_id):
            result.successful += 1
        else:
            result.failed += 1

    logger.info("batch_index_done", successful=result.successful, failed=result.failed)
    return result


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def rank_by_similarity(query_vector: list[float], rows, limit: int = 10) -> list[CandidateSearchResult]:
    """Order (candidate, vector) rows by cosine similarity to the query vector."""
    ranked = sorted(
        ((cosine_similarity(query_vector, vector), candidate) for candidate, vector in rows),
        key=lambda item: item[0],
        reverse=True,
    )
    return [
        CandidateSearchResult(
            candidate_id=str(candidate.id),
            full_name=candidate.full_name,
            headline=candidate.headline,
            similarity=round(score, 4),
        )
        for score, candidate in ranked[:limit]
    ]
