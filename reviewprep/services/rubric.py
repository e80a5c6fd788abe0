"""Impact rubric (handbook) content for engineering levels C4-C8.

Structure:
  - Foundation: table-stakes behaviors expected at every level
  - Core: level-specific expectations
  - Peak: stretch behaviors that demonstrate outsized impact
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class RubricCategory:
    id: str
    name: str
    description: str
    examples: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Rubric:
    level: str
    foundation: tuple[RubricCategory, ...]
    core: tuple[RubricCategory, ...]
    peak: tuple[RubricCategory, ...]

    @property
    def categories(self) -> tuple[RubricCategory, ...]:
        return self.foundation + self.core + self.peak


FOUNDATION = (
    RubricCategory(
        "shipping-prs",
        "Shipping PRs",
        "Consistently shipping well-scoped, well-tested pull requests that move projects forward.",
        (
            "Regularly merging PRs that are focused and reviewable",
            "Writing clear PR descriptions that explain the why",
            "Breaking large changes into incremental, shippable pieces",
        ),
    ),
    RubricCategory(
        "reviewing-prs",
        "Reviewing PRs",
        "Providing thoughtful, timely code reviews that improve quality and help teammates grow.",
        (
            "Leaving constructive feedback that catches real issues",
            "Reviewing with context, understanding the broader goal",
            "Turning reviews around quickly to unblock others",
        ),
    ),
    RubricCategory(
        "collaborating",
        "Collaborating",
        "Working effectively with teammates, communicating clearly, and contributing to a healthy team dynamic.",
        (
            "Pairing with teammates to solve tricky problems",
            "Communicating blockers and trade-offs proactively",
            "Participating constructively in design discussions",
        ),
    ),
    RubricCategory(
        "team-responsibilities",
        "Team Responsibilities",
        "Fulfilling team obligations like on-call duties, incident response, and operational excellence.",
        (
            "Responding to incidents and following up with post-mortems",
            "Maintaining team runbooks and documentation",
            "Taking on bug triage or support rotation shifts",
        ),
    ),
    RubricCategory(
        "using-ai",
        "Using AI",
        "Leveraging AI tools to accelerate development, automate repetitive tasks, and improve productivity.",
        (
            "Using AI-assisted coding to move faster on implementation",
            "Automating repetitive tasks with AI tools",
            "Evaluating AI-generated suggestions critically",
        ),
    ),
)

CORE_C5 = (
    RubricCategory(
        "advancing-projects",
        "Advancing Projects",
        "Driving assigned work items forward reliably, escalating when stuck, and delivering on commitments.",
        (
            "Completing feature work within estimated timelines",
            "Proactively raising blockers before they stall progress",
            "Following through on action items from design reviews",
        ),
    ),
    RubricCategory(
        "building-knowledge",
        "Building Knowledge",
        "Actively learning the codebase, domain, and tools. Asking good questions and documenting findings.",
        (
            "Ramping up on unfamiliar areas of the codebase efficiently",
            "Documenting learnings and patterns for the team",
            "Seeking feedback and iterating on approach",
        ),
    ),
    RubricCategory(
        "improving-quality",
        "Improving Quality",
        "Contributing to code quality through testing, refactoring, and following best practices.",
        (
            "Adding tests for untested code paths",
            "Refactoring code you touch to leave it better than you found it",
            "Following established patterns and conventions",
        ),
    ),
)

CORE_C6 = (
    RubricCategory(
        "leading-projects",
        "Leading Projects",
        "Owning the delivery of a feature or project end-to-end. Coordinating across teams when needed.",
        (
            "Driving a project from design through launch",
            "Coordinating with product, design, and other engineering teams",
            "Making technical decisions and documenting trade-offs",
        ),
    ),
    RubricCategory(
        "taking-ownership",
        "Taking Ownership",
        "Going beyond assigned work to identify and solve problems that improve the team's systems and processes.",
        (
            "Identifying and fixing systemic issues without being asked",
            "Owning operational health of team services",
            "Proactively improving developer experience or CI/CD pipelines",
        ),
    ),
    RubricCategory(
        "mentoring",
        "Mentoring",
        "Helping teammates grow through code reviews, pairing, and knowledge sharing.",
        (
            "Mentoring junior developers through complex problems",
            "Running knowledge-sharing sessions or tech talks",
            "Writing detailed code reviews that teach, not just correct",
        ),
    ),
)

CORE_C7 = (
    RubricCategory(
        "shaping-direction",
        "Shaping Technical Direction",
        "Defining architecture and technical strategy for your area. Setting patterns others follow.",
        (
            "Writing RFCs or design documents that shape team direction",
            "Evaluating and adopting new technologies strategically",
            "Defining coding standards and architectural patterns",
        ),
    ),
    RubricCategory(
        "cross-team-impact",
        "Cross-Team Impact",
        "Driving improvements that affect multiple teams or the broader engineering organization.",
        (
            "Building shared infrastructure or libraries used by other teams",
            "Leading cross-team initiatives or migrations",
            "Representing your team in org-wide technical decisions",
        ),
    ),
    RubricCategory(
        "raising-the-bar",
        "Raising the Bar",
        "Elevating engineering quality and practices across the organization.",
        (
            "Introducing testing or reliability practices adopted by other teams",
            "Creating tooling that improves developer productivity broadly",
            "Setting new standards for performance, security, or observability",
        ),
    ),
)

PEAK = (
    RubricCategory(
        "telling-people",
        "Telling People",
        "Communicating your work and its impact clearly in PRDs, demos, posts, or presentations.",
        (
            "Writing compelling project updates or launch announcements",
            "Presenting technical work to non-technical stakeholders",
            "Sharing learnings through blog posts or internal talks",
        ),
    ),
    RubricCategory(
        "side-quests",
        "Side Quests",
        "Contributing to areas outside your immediate team scope: hack days, open source, internal tools.",
        (
            "Contributing to open-source projects or internal shared tools",
            "Building prototypes during hack days that get adopted",
            "Helping other teams with debugging or architecture advice",
        ),
    ),
    RubricCategory(
        "stretching-impact",
        "Stretching Impact",
        "Finding ways to amplify your impact beyond individual contributions through tooling, processes, or culture.",
        (
            "Creating automation that saves the team hours every week",
            "Establishing a new process that improves team velocity",
            "Championing a cultural change that improves team health",
        ),
    ),
    RubricCategory(
        "cultivating-best-practices",
        "Cultivating Best Practices",
        "Defining and spreading engineering best practices within and beyond your team.",
        (
            "Writing and maintaining team engineering guidelines",
            "Running workshops or training sessions",
            "Creating templates or starter kits that accelerate team output",
        ),
    ),
)

# C4 shares the C5 core, C8 shares the C7 core
CORE_BY_LEVEL = {
    "C4": CORE_C5,
    "C5": CORE_C5,
    "C6": CORE_C6,
    "C7": CORE_C7,
    "C8": CORE_C7,
}

LEVELS = (
    ("C4", "C4 - Junior"),
    ("C5", "C5 - Developer / Intermediate"),
    ("C6", "C6 - Senior"),
    ("C7", "C7 - Staff"),
    ("C8", "C8 - Principal"),
)

_TITLE_LEVELS = (
    (re.compile(r"\bprincipal\b"), "C8"),
    (re.compile(r"\bstaff\b"), "C7"),
    (re.compile(r"\b(?:senior|sr)\b"), "C6"),
    (re.compile(r"\b(?:intermediate|mid)\b"), "C5"),
    (re.compile(r"\bjunior\b"), "C4"),
    (re.compile(r"\b(?:developer|engineer|dev)\b"), "C5"),
)


def get_rubric(level: str) -> Rubric:
    """Rubric for `level`; unknown levels use the C5 core."""
    return Rubric(
        level=level,
        foundation=FOUNDATION,
        core=CORE_BY_LEVEL.get(level, CORE_C5),
        peak=PEAK,
    )


def get_all_categories(level: str) -> list[RubricCategory]:
    return list(get_rubric(level).categories)


def category_ids(level: str) -> list[str]:
    return [category.id for category in get_rubric(level).categories]


def rubric_to_prompt_text(level: str) -> str:
    rubric = get_rubric(level)

    def _section(title: str, categories: tuple[RubricCategory, ...]) -> str:
        lines = "\n".join(f"- **{category.name}**: {category.description}" for category in categories)
        return f"## {title}\n{lines}"

    return "\n\n".join(
        [
            _section("Foundation (table stakes)", rubric.foundation),
            _section(f"Core ({level}-specific expectations)", rubric.core),
            _section("Peak (stretch behaviors)", rubric.peak),
        ]
    )


def level_from_title(title: Optional[str]) -> Optional[str]:
    """Best-effort engineering level from a job title."""
    if not title:
        return None
    lowered = title.lower()
    for pattern, level in _TITLE_LEVELS:
        if pattern.search(lowered):
            return level
    return None
