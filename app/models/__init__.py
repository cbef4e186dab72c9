from app.models.candidate import Candidate, Certification, Education, Experience, Project
from app.models.candidate_embedding import CandidateEmbedding
from app.models.role import Role
from app.models.screening import Screening
from app.models.skill import CandidateSkill, Skill

__all__ = [
    "Role",
    "Candidate",
    "Experience",
    "Education",
    "Certification",
    "Project",
    "Skill",
    "CandidateSkill",
    "Screening",
    "CandidateEmbedding",
]
