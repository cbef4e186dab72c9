"""Turns a screening task into a persisted score.

The store and the scorer are passed in so the flow runs the same against
PostgreSQL + Claude in the worker and against in-memory doubles in tests.
"""

import structlog

from app.schemas.screening import ScreeningOutcome, ScreeningTask
from app.services.scoring import Scorer

logger = structlog.get_logger()


class PermanentScreeningError(Exception):
    """The task references data that no longer exists; retrying cannot help."""

    def __init__(self, message: str, role_id: str, candidate_id: str):
        super().__init__(message)
        self.role_id = role_id
        self.candidate_id = candidate_id


class RoleNotFoundError(PermanentScreeningError):
    pass


class CandidateNotFoundError(PermanentScreeningError):
    pass


def _compact(data: dict) -> dict:
    return {k: v for k, v in data.items() if v is not None}


def build_candidate_payload(candidate, experiences, education, certifications, skill_names) -> dict:
    payload = {
        "full_name": candidate.full_name or "",
        "contact": _compact(
            {
                "email": candidate.email,
                "phone": candidate.phone,
                "city": candidate.city,
                "country": candidate.country,
            }
        ),
        "headline": candidate.headline,
        "summary": candidate.summary,
        "links": candidate.links or {},
        "work_authorization": candidate.work_authorization,
        "availability": candidate.availability,
        "salary_expectation": candidate.salary_expectation,
        "skills": [name for name in skill_names if name],
        "experience": [
            _compact(
                {
                    "title": exp.title or "",
                    "company": exp.company or "",
                    "industry": exp.industry,
                    "location": exp.location,
                    "start_date": exp.start_date,
                    "end_date": exp.end_date,
                    "is_current": bool(exp.is_current),
                    "bullets": exp.bullets or [],
                }
            )
            for exp in experiences
        ],
        "education": [
            _compact(
                {
                    "institution": edu.institution or "",
                    "qualification": edu.qualification or "",
                    "location": edu.location,
                    "grad_date": edu.grad_date,
                }
            )
            for edu in education
        ],
        "certifications": [
            _compact({"name": cert.name or "", "issuer": cert.issuer, "year": cert.year})
            for cert in certifications
        ],
    }
    return _compact(payload)


def build_role_payload(role) -> dict:
    payload = {
        "job_title": role.job_title,
        "job_description": role.job_description,
        "seniority": role.seniority,
        "employment_type": role.employment_type,
        "location": _compact(
            {
                "city": role.location_city,
                "country": role.location_country,
                "work_type": role.work_type,
            }
        ),
        "must_have_skills": role.must_have_skills or [],
        "nice_to_have_skills": role.nice_to_have_skills or [],
        "salary_range": _compact(
            {
                "min": role.salary_min,
                "max": role.salary_max,
                "currency": role.salary_currency,
            }
        ),
        "knockouts": role.knockouts or [],
        "weights": role.weights,
    }
    return _compact(payload)


def screen_candidate(store, scorer: Scorer | None, task: ScreeningTask) -> ScreeningOutcome:
    role_id, candidate_id = task.role_id, task.candidate_id
    logger.info("screening_start", role_id=role_id, candidate_id=candidate_id)

    if scorer is None:
        logger.warning("screening_skipped", role_id=role_id, candidate_id=candidate_id, reason="scoring_not_configured")
        return ScreeningOutcome(
            status="skipped", role_id=role_id, candidate_id=candidate_id, reason="scoring_not_configured"
        )

    role = store.get_role(role_id)
    if role is None:
        raise RoleNotFoundError(f"Role {role_id} not found", role_id, candidate_id)

    if not role.is_active:
        logger.info("screening_skipped", role_id=role_id, candidate_id=candidate_id, reason="role_inactive")
        return ScreeningOutcome(status="skipped", role_id=role_id, candidate_id=candidate_id, reason="role_inactive")

    candidate = store.get_candidate(candidate_id)
    if candidate is None:
        raise CandidateNotFoundError(f"Candidate {candidate_id} not found", role_id, candidate_id)

    candidate_payload = build_candidate_payload(
        candidate,
        store.list_experiences(candidate_id),
        store.list_education(candidate_id),
        store.list_certifications(candidate_id),
        store.list_skill_names(candidate_id),
    )
    result = scorer.evaluate(candidate_payload, build_role_payload(role))

    store.upsert_screening(role_id, candidate_id, result)

    logger.info("screening_done", role_id=role_id, candidate_id=candidate_id, score=result.score_total)
    return ScreeningOutcome(
        status="completed", role_id=role_id, candidate_id=candidate_id, score_total=result.score_total
    )
