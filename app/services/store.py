"""Relational access used by the screening and indexing workers.

Runs on a sync session: Celery tasks are plain functions, the web tier keeps
its own async session.
"""

import json
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.models.candidate import Candidate, Certification, Education, Experience, Project
from app.models.candidate_embedding import CandidateEmbedding
from app.models.role import Role
from app.models.screening import Screening
from app.models.skill import CandidateSkill, Skill
from app.schemas.screening import ScoreResult


def parse_id(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        return None


class ScreeningStore:
    def __init__(self, session: Session):
        self.session = session

    def get_role(self, role_id: str) -> Role | None:
        uid = parse_id(role_id)
        return self.session.get(Role, uid) if uid else None

    def get_candidate(self, candidate_id: str) -> Candidate | None:
        uid = parse_id(candidate_id)
        return self.session.get(Candidate, uid) if uid else None

    def list_experiences(self, candidate_id: str) -> list[Experience]:
        return self._children(Experience, candidate_id)

    def list_education(self, candidate_id: str) -> list[Education]:
        return self._children(Education, candidate_id)

    def list_certifications(self, candidate_id: str) -> list[Certification]:
        return self._children(Certification, candidate_id)

    def list_projects(self, candidate_id: str) -> list[Project]:
        return self._children(Project, candidate_id)

    def list_skill_names(self, candidate_id: str) -> list[str]:
        uid = parse_id(candidate_id)
        if uid is None:
            return []
        result = self.session.execute(
            select(Skill.name)
            .join(CandidateSkill, CandidateSkill.skill_id == Skill.id)
            .where(CandidateSkill.candidate_id == uid)
            .order_by(Skill.name)
        )
        return [name for name in result.scalars().all() if name]

    def _children(self, model, candidate_id: str) -> list:
        uid = parse_id(candidate_id)
        if uid is None:
            return []
        result = self.session.execute(select(model).where(model.candidate_id == uid))
        return list(result.scalars().all())

    def upsert_screening(self, role_id: str, candidate_id: str, result: ScoreResult) -> None:
        """Insert or overwrite the screening of a pair in one statement, then commit."""
        values = {
            "score_total": result.score_total,
            "score_breakdown": result.score_breakdown,
            "must_haves_satisfied": result.must_haves_satisfied,
            "missing_must_haves": result.missing_must_haves,
            "knockout": result.knockout,
            "reasons": result.reasons,
            "flags": result.flags,
        }
        stmt = insert(Screening).values(
            role_id=UUID(role_id), candidate_id=UUID(candidate_id), created_at=func.now(), **values
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_screening_role_candidate",
            set_={**values, "created_at": func.now()},
        )
        self.session.execute(stmt)
        self.session.commit()

    def upsert_embedding(self, candidate_id: str, vector: list[float], model: str | None = None) -> None:
        payload = json.dumps(vector)
        stmt = insert(CandidateEmbedding).values(
            candidate_id=UUID(candidate_id), embedding=payload, model=model, updated_at=func.now()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CandidateEmbedding.candidate_id],
            set_={"embedding": payload, "model": model, "updated_at": func.now()},
        )
        self.session.execute(stmt)
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
