from typing import List, Optional

from talent_match.models.models import CandidateRecord, ExperienceLevel, JobRecord, ScoreBreakdown
from talent_match.models.settings import ScoringWeights

GENERIC_REASON = "Good overall match based on AI analysis"
NEUTRAL_SCORE = 50.0
TITLE_SIMILARITY_THRESHOLD = 0.4

# checked in order, first hit wins
EXPERIENCE_KEYWORDS = [
    (ExperienceLevel.SENIOR, ("senior", "lead", "principal")),
    (ExperienceLevel.JUNIOR, ("junior", "entry", "associate")),
    (ExperienceLevel.MANAGEMENT, ("manager", "director", "head")),
]

EXPERIENCE_RANK = {
    ExperienceLevel.JUNIOR: 1,
    ExperienceLevel.MID_LEVEL: 2,
    ExperienceLevel.SENIOR: 3,
    ExperienceLevel.MANAGEMENT: 4,
}


def clamp(x: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, x))


def skill_matches(a: str, b: str) -> bool:
    a, b = a.lower().strip(), b.lower().strip()
    if not a or not b:
        return False
    return a in b or b in a


def matching_skills(candidate_skills: List[str], job_skills: List[str]) -> List[str]:
    """Candidate skills that cover at least one job skill, in candidate order"""
    return [s for s in candidate_skills if any(skill_matches(s, js) for js in job_skills)]


def skill_score(candidate_skills: List[str], job_skills: List[str]) -> float:
    if not job_skills:
        return NEUTRAL_SCORE
    covered = [js for js in job_skills if any(skill_matches(cs, js) for cs in candidate_skills)]
    return 100.0 * len(covered) / len(job_skills)


def infer_experience_level(text: str) -> ExperienceLevel:
    t = (text or "").lower()
    for level, keywords in EXPERIENCE_KEYWORDS:
        if any(k in t for k in keywords):
            return level
    return ExperienceLevel.MID_LEVEL


def candidate_experience_level(candidate: CandidateRecord) -> ExperienceLevel:
    return infer_experience_level(f"{candidate.current_title} {candidate.summary}")


def job_experience_level(job: JobRecord) -> ExperienceLevel:
    return infer_experience_level(f"{job.title} {job.description}")


def experience_score(candidate: CandidateRecord, job: JobRecord) -> float:
    # binary on purpose: adjacent levels are not rewarded
    return 100.0 if candidate_experience_level(candidate) == job_experience_level(job) else 70.0


def location_matches(candidate_location: Optional[str], job_location: Optional[str]) -> bool:
    cl = (candidate_location or "").lower().strip()
    jl = (job_location or "").lower().strip()
    if "remote" in cl or "remote" in jl:
        return True
    if cl and jl:
        return cl in jl or jl in cl
    return False


def location_score(candidate_location: Optional[str], job_location: Optional[str]) -> float:
    return 100.0 if location_matches(candidate_location, job_location) else NEUTRAL_SCORE


def _title_words(title: str) -> set:
    return {w for w in (title or "").lower().split() if len(w) > 2}


def title_similarity(t1: str, t2: str) -> float:
    w1, w2 = _title_words(t1), _title_words(t2)
    if not w1 or not w2:
        return 0.0
    return len(w1 & w2) / max(len(w1), len(w2))


def query_terms(query: Optional[str], min_length: int = 0) -> List[str]:
    return [t for t in (query or "").lower().split() if len(t) > min_length]


def match_reasons(candidate: Optional[CandidateRecord], job: JobRecord, query: Optional[str] = None) -> List[str]:
    """Human-readable reasons, strongest signal first. Never empty."""
    reasons = []

    if candidate is not None:
        skills = matching_skills(candidate.skills, job.skills)
        if skills:
            reasons.append(f"{len(skills)} matching skills: {', '.join(skills[:3])}")

        if candidate.current_title and title_similarity(candidate.current_title, job.title) > TITLE_SIMILARITY_THRESHOLD:
            reasons.append("Similar role to your current position")

        if candidate.location and location_matches(candidate.location, job.location):
            reasons.append("Location matches your preference")

    if query:
        job_text = f"{job.title} {job.description}".lower()
        found = [t for t in query_terms(query) if t in job_text]
        if found:
            reasons.append(f"Matches your search: {', '.join(found[:2])}")

    return reasons or [GENERIC_REASON]


ROLE_SIMILARITY_THRESHOLD = 0.6

SEMANTIC_MATCH_TIERS = [
    (90, "Excellent AI match (90%+)"),
    (80, "Strong AI match (80%+)"),
    (70, "Good AI match (70%+)"),
]


def candidate_match_reasons(candidate: CandidateRecord, job: JobRecord, score: int) -> List[str]:
    """Reasons shown to a recruiter for a candidate retrieved for their job. Never empty."""
    reasons = []

    skills = matching_skills(candidate.skills, job.skills)
    if skills:
        reasons.append(f"{len(skills)} matching skills: {', '.join(skills[:3])}")

    if candidate.current_title and title_similarity(candidate.current_title, job.title) > ROLE_SIMILARITY_THRESHOLD:
        reasons.append("Similar role experience")

    for threshold, label in SEMANTIC_MATCH_TIERS:
        if score >= threshold:
            reasons.append(label)
            break

    if candidate.location and job.location and location_matches(candidate.location, job.location):
        reasons.append("Location match")

    return reasons or [GENERIC_REASON]


def semantic_score(distance: Optional[float]) -> Optional[float]:
    if distance is None:
        return None
    return clamp((1.0 - distance) * 100.0)


class MultiFactorScorer:
    """Weighted blend of vector similarity, skills, experience and location.

    Without a distance (embeddings or retrieval unavailable) the score falls
    back to skill overlap alone and the breakdown is marked degraded.
    """

    def __init__(self, weights: ScoringWeights = None):
        self.weights = weights or ScoringWeights()

    def score(
        self,
        candidate: Optional[CandidateRecord],
        job: JobRecord,
        distance: Optional[float] = None,
        query: Optional[str] = None,
    ) -> ScoreBreakdown:
        semantic = semantic_score(distance)
        reasons = match_reasons(candidate, job, query)

        if candidate is None:
            # anonymous search: nothing to compare the job against but the query
            overall = semantic if semantic is not None else NEUTRAL_SCORE
            return ScoreBreakdown(
                overall=int(clamp(round(overall))),
                semantic=semantic,
                skill=NEUTRAL_SCORE,
                reasons=reasons,
                degraded=distance is None,
            )

        skill = skill_score(candidate.skills, job.skills)
        skills = matching_skills(candidate.skills, job.skills)

        if semantic is None:
            return ScoreBreakdown(
                overall=int(clamp(round(skill))),
                skill=skill,
                matching_skills=skills,
                reasons=reasons,
                degraded=True,
            )

        experience = experience_score(candidate, job)
        location = location_score(candidate.location, job.location)
        w = self.weights
        overall = (
            semantic * w.semantic
            + skill * w.skill
            + experience * w.experience
            + location * w.location
        )
        return ScoreBreakdown(
            overall=int(clamp(round(overall))),
            semantic=semantic,
            skill=skill,
            experience=experience,
            location=location,
            matching_skills=skills,
            reasons=reasons,
        )
