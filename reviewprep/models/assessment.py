"""Analysis results: clusters, rubric mappings, question sets and the assessment aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from reviewprep.models.pull_request import PullRequest

RELEVANCE_TIERS = ("high", "medium", "low")


@dataclass(slots=True)
class Cluster:
    """A model-inferred project grouping of pull requests."""

    id: str
    name: str
    summary: str
    prs: list[PullRequest] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "summary": self.summary,
            "prs": [pr.to_dict() for pr in self.prs],
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Cluster":
        prs = payload.get("prs") if isinstance(payload.get("prs"), list) else []
        return cls(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            summary=str(payload.get("summary") or ""),
            prs=[PullRequest.from_dict(pr) for pr in prs if isinstance(pr, dict)],
        )


@dataclass(frozen=True, slots=True)
class CategoryAssignment:
    category_id: str
    relevance: str
    evidence: str

    def to_dict(self) -> dict[str, Any]:
        return {"categoryId": self.category_id, "relevance": self.relevance, "evidence": self.evidence}


@dataclass(slots=True)
class CategoryMapping:
    """Rubric categories assigned to one cluster."""

    cluster_id: str
    categories: list[CategoryAssignment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"clusterId": self.cluster_id, "categories": [item.to_dict() for item in self.categories]}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "CategoryMapping":
        raw_categories = payload.get("categories") if isinstance(payload.get("categories"), list) else []
        return cls(
            cluster_id=str(payload.get("clusterId") or ""),
            categories=[
                CategoryAssignment(
                    category_id=str(item.get("categoryId") or ""),
                    relevance=str(item.get("relevance") or "medium"),
                    evidence=str(item.get("evidence") or ""),
                )
                for item in raw_categories
                if isinstance(item, dict)
            ],
        )


@dataclass(frozen=True, slots=True)
class Question:
    id: str
    text: str
    context: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "context": self.context}


@dataclass(slots=True)
class QuestionSet:
    """Reflection questions generated for one cluster."""

    cluster_id: str
    questions: list[Question] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"clusterId": self.cluster_id, "questions": [question.to_dict() for question in self.questions]}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "QuestionSet":
        raw_questions = payload.get("questions") if isinstance(payload.get("questions"), list) else []
        return cls(
            cluster_id=str(payload.get("clusterId") or ""),
            questions=[
                Question(
                    id=str(item.get("id") or ""),
                    text=str(item.get("text") or ""),
                    context=str(item.get("context") or ""),
                )
                for item in raw_questions
                if isinstance(item, dict)
            ],
        )


@dataclass(slots=True)
class Assessment:
    """Top-level persisted aggregate, owned by one user and replaced as a whole."""

    user_email: str
    clusters: list[Cluster]
    mappings: list[CategoryMapping]
    questions: list[QuestionSet]
    generated_at: int
    narrative: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "userEmail": self.user_email,
            "clusters": [cluster.to_dict() for cluster in self.clusters],
            "mappings": [mapping.to_dict() for mapping in self.mappings],
            "questions": [question_set.to_dict() for question_set in self.questions],
            "narrative": self.narrative,
            "generatedAt": self.generated_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Assessment":
        def _dicts(key: str) -> list[dict[str, Any]]:
            raw = payload.get(key)
            return [item for item in raw if isinstance(item, dict)] if isinstance(raw, list) else []

        narrative = payload.get("narrative")
        return cls(
            user_email=str(payload.get("userEmail") or ""),
            clusters=[Cluster.from_dict(item) for item in _dicts("clusters")],
            mappings=[CategoryMapping.from_dict(item) for item in _dicts("mappings")],
            questions=[QuestionSet.from_dict(item) for item in _dicts("questions")],
            narrative=str(narrative) if narrative is not None else None,
            generated_at=int(payload.get("generatedAt") or 0),
        )
