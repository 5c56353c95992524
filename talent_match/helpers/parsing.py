import re
from typing import Optional

from talent_match.models.models import CandidateRecord, CompanyRecord, JobRecord


def clean_text(x: str) -> str:
    x = re.sub(r'\s+', ' ', x or "").strip()
    return x


def candidate_document_text(candidate: CandidateRecord) -> str:
    """Text embedded for a candidate: title, summary, then skills"""
    parts = [candidate.current_title, candidate.summary]
    if candidate.skills:
        parts.append("Skills: " + ", ".join(candidate.skills))
    return clean_text(" ".join(p for p in parts if p))


def job_document_text(job: JobRecord) -> str:
    return clean_text(f"{job.title} {job.description}")


def company_info_text(company: Optional[CompanyRecord], job: Optional[JobRecord] = None) -> str:
    parts = []
    if company:
        parts.append(company.name)
        if company.description:
            parts.append(company.description)
    benefits = (job.benefits if job else []) or (company.benefits if company else [])
    if benefits:
        parts.append("Benefits: " + ", ".join(benefits))
    return "\n".join(parts)


def candidate_profile_text(candidate: CandidateRecord) -> str:
    lines = [f"Name: {candidate.full_name}", f"Current title: {candidate.current_title}"]
    if candidate.summary:
        lines.append(f"Summary: {candidate.summary}")
    if candidate.skills:
        lines.append(f"Skills: {', '.join(candidate.skills)}")
    if candidate.location:
        lines.append(f"Location: {candidate.location}")
    return "\n".join(lines)


def _money(x: float) -> str:
    return f"${x:,.0f}"


def format_salary_range(salary_min: Optional[float], salary_max: Optional[float]) -> Optional[str]:
    if salary_min and salary_max:
        return f"{_money(salary_min)} - {_money(salary_max)}"
    if salary_min:
        return f"{_money(salary_min)}+"
    if salary_max:
        return f"Up to {_money(salary_max)}"
    return None


def excerpt(text: str, limit: int = 500) -> str:
    text = clean_text(text)
    return text if len(text) <= limit else text[:limit].rstrip() + "..."
