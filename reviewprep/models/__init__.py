"""Domain and persistence models"""

from reviewprep.models.assessment import (
    RELEVANCE_TIERS,
    Assessment,
    CategoryAssignment,
    CategoryMapping,
    Cluster,
    Question,
    QuestionSet,
)
from reviewprep.models.document import Document
from reviewprep.models.pull_request import PullRequest

__all__ = [
    "RELEVANCE_TIERS",
    "Assessment",
    "CategoryAssignment",
    "CategoryMapping",
    "Cluster",
    "Document",
    "PullRequest",
    "Question",
    "QuestionSet",
]
