"""
Profile-to-project match scoring.

The score is the share of a project's declared needs (roles, tech stack,
experience level) that a collaborator profile covers, as a rounded
percentage, together with human-readable reasons. Availability only ever adds
an advisory reason.
"""

from collections.abc import Iterable, Mapping

from app.schemas.matching import MatchReason, MatchResult

EXPERIENCE_LEVELS = ("beginner", "intermediate", "advanced", "expert")
FLEXIBLE_AVAILABILITY = ("flexible", "part-time")
TOP_CANDIDATE_RATIO = 0.6
MAX_LISTED_SKILLS = 3


def _as_list(value) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _needed_names(entries) -> list[str]:
    # project needs keep their spelling; non-string entries are not criteria
    return [entry.strip() for entry in _as_list(entries) if isinstance(entry, str) and entry.strip()]


def normalize_names(entries, key: str) -> list[str]:
    """Flatten bare names and tagged objects ({key: name}) into lowercase names.

    Entries that are neither a string nor carry a string under ``key`` are
    dropped.
    """
    names = []
    for entry in _as_list(entries):
        if isinstance(entry, Mapping):
            entry = entry.get(key)
        elif not isinstance(entry, str):
            entry = getattr(entry, key, None)
        if isinstance(entry, str) and entry.strip():
            names.append(entry.strip().lower())
    return names


def experience_rank(level) -> int | None:
    if not isinstance(level, str):
        return None
    try:
        return EXPERIENCE_LEVELS.index(level.strip().lower())
    except ValueError:
        return None


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def calculate_match_score(profile, project) -> MatchResult:
    """Score how well ``profile`` covers the needs declared by ``project``.

    ``profile`` is a collaborator profile (or None); ``project`` is a project.
    Both are read by attribute and never modified.
    """
    if profile is None:
        return MatchResult(score=0, reasons=[])

    score = 0
    total_criteria = 0
    reasons: list[MatchReason] = []

    roles_needed = _needed_names(getattr(project, "roles_needed", None))
    if roles_needed:
        total_criteria += len(roles_needed)
        profile_roles = normalize_names(getattr(profile, "roles", None), "type")
        matched_roles = [role for role in roles_needed if role.lower() in profile_roles]
        score += len(matched_roles)

        for role in matched_roles:
            reasons.append(
                MatchReason(
                    type="strength",
                    text=f"Your {role} expertise aligns perfectly with this project's needs",
                )
            )
        if not matched_roles and profile_roles:
            reasons.append(
                MatchReason(
                    type="consideration",
                    text="While your primary roles differ, your diverse skill set could bring unique value",
                )
            )

    tech_stack = _needed_names(getattr(project, "tech_stack", None))
    if tech_stack:
        total_criteria += len(tech_stack)
        profile_skills = normalize_names(getattr(profile, "skills", None), "name")
        matched_skills = [tech for tech in tech_stack if tech.lower() in profile_skills]
        score += len(matched_skills)

        if matched_skills:
            listed = ", ".join(matched_skills[:MAX_LISTED_SKILLS])
            remaining = len(matched_skills) - MAX_LISTED_SKILLS
            suffix = f" and {remaining} more" if remaining > 0 else ""
            reasons.append(
                MatchReason(type="strength", text=f"You have hands-on experience with {listed}{suffix}")
            )

    profile_level = getattr(profile, "experience_level", None)
    profile_rank = experience_rank(profile_level)
    project_rank = experience_rank(getattr(project, "experience_level", None))
    if profile_rank is not None and project_rank is not None:
        total_criteria += 1
        if profile_rank >= project_rank:
            score += 1
            reasons.append(
                MatchReason(
                    type="strength",
                    text=f"Your {profile_level.strip().lower()} experience level meets the project requirements",
                )
            )
        elif profile_rank == project_rank - 1:
            reasons.append(
                MatchReason(
                    type="consideration",
                    text="This project seeks slightly more experience, but could be a great growth opportunity",
                )
            )

    availability = getattr(profile, "availability", None)
    timeline = getattr(project, "timeline", None)
    if (
        isinstance(availability, str)
        and availability.strip().lower() in FLEXIBLE_AVAILABILITY
        and isinstance(timeline, str)
        and timeline.strip()
    ):
        reasons.append(
            MatchReason(
                type="strength",
                text=f"Your flexible availability matches the project's {timeline.strip()} timeline",
            )
        )

    if total_criteria > 0 and score > total_criteria * TOP_CANDIDATE_RATIO:
        reasons.append(
            MatchReason(
                type="strength",
                text="Based on your profile, you're among the top candidates for this opportunity",
            )
        )

    final_score = _round_half_up(100 * score, total_criteria) if total_criteria > 0 else 0
    return MatchResult(score=final_score, reasons=reasons)


def rank_projects(profile, projects: Iterable, threshold: int) -> list[tuple[object, MatchResult]]:
    """Score every project, keep those above ``threshold``, best first."""
    scored = []
    for project in projects:
        result = calculate_match_score(profile, project)
        if result.score > threshold:
            scored.append((project, result))
    scored.sort(key=lambda item: item[1].score, reverse=True)
    return scored


def average_match_score(profile, projects: Iterable, threshold: int) -> tuple[int, int]:
    """Return (number of matches above threshold, their rounded average score)."""
    scores = [result.score for _, result in rank_projects(profile, projects, threshold)]
    if not scores:
        return 0, 0
    return len(scores), _round_half_up(sum(scores), len(scores))
