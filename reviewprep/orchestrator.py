"""Analysis pipeline: cluster -> map to rubric -> generate questions -> persist."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from reviewprep.github.redaction import sanitize_log_extra
from reviewprep.models.assessment import Assessment, CategoryMapping, Cluster, QuestionSet
from reviewprep.models.pull_request import PullRequest
from reviewprep.pipeline.clustering_stage import ClusteringStage
from reviewprep.pipeline.mapping_stage import MappingStage
from reviewprep.pipeline.questions_stage import QuestionsStage
from reviewprep.services.llm import TextGenerator, create_text_generator
from reviewprep.stores.assessment_store import AssessmentStore

logger = logging.getLogger(__name__)

STEP_CLUSTERING = 1
STEP_MAPPING = 2
STEP_QUESTIONS = 3

CLUSTERING_LABEL = "Clustering PRs into projects..."
MAPPING_LABEL = "Mapping to Impact Handbook..."


@dataclass(frozen=True, slots=True)
class StageUpdate:
    """Progress event; `detail` carries one streamed text delta when present."""

    step: int
    label: str
    detail: Optional[str] = None


StageCallback = Callable[[StageUpdate], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


def questions_label(position: int, total: int) -> str:
    return f"Generating questions... ({position}/{total})"


class AnalysisPipeline:
    """Runs the three generation stages strictly in sequence.

    Each stage needs the previous stage's full result, and stage 3 runs one
    request per cluster, one after another. Callbacks run inline with stream
    consumption and must return quickly.
    """

    def __init__(
        self,
        *,
        generator: Optional[TextGenerator] = None,
        store: Optional[Any] = None,
        clustering_stage: Optional[ClusteringStage] = None,
        mapping_stage: Optional[MappingStage] = None,
        questions_stage: Optional[QuestionsStage] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._generator = generator
        self._store = store
        self._clustering_stage = clustering_stage
        self._mapping_stage = mapping_stage
        self._questions_stage = questions_stage
        self._clock = clock

    async def run(
        self,
        prs: Sequence[PullRequest],
        level: str,
        user_email: str,
        on_stage_change: Optional[StageCallback] = None,
    ) -> Assessment:
        notify = on_stage_change or (lambda _update: None)
        logger.info(
            "Analysis pipeline started",
            extra=sanitize_log_extra(user=user_email, level=level, prs=len(prs)),
        )

        clusters = await self.cluster(prs, notify)
        mappings = await self.map_to_rubric(clusters, level, notify)
        questions = await self.generate_questions(clusters, mappings, notify)

        assessment = Assessment(
            user_email=user_email,
            clusters=clusters,
            mappings=mappings,
            questions=questions,
            narrative=None,
            generated_at=self._clock(),
        )
        await self._persist(assessment)

        logger.info(
            "Analysis pipeline completed",
            extra=sanitize_log_extra(
                user=user_email,
                clusters=len(clusters),
                mappings=len(mappings),
                questions=sum(len(item.questions) for item in questions),
            ),
        )
        return assessment

    async def cluster(self, prs: Sequence[PullRequest], notify: StageCallback) -> list[Cluster]:
        notify(StageUpdate(STEP_CLUSTERING, CLUSTERING_LABEL))
        if not prs:
            return []
        return await self._resolve_clustering_stage().run(
            prs,
            lambda text: notify(StageUpdate(STEP_CLUSTERING, CLUSTERING_LABEL, text)),
        )

    async def map_to_rubric(
        self,
        clusters: Sequence[Cluster],
        level: str,
        notify: StageCallback,
    ) -> list[CategoryMapping]:
        notify(StageUpdate(STEP_MAPPING, MAPPING_LABEL))
        if not clusters:
            return []
        return await self._resolve_mapping_stage().run(
            clusters,
            level,
            lambda text: notify(StageUpdate(STEP_MAPPING, MAPPING_LABEL, text)),
        )

    async def generate_questions(
        self,
        clusters: Sequence[Cluster],
        mappings: Sequence[CategoryMapping],
        notify: StageCallback,
    ) -> list[QuestionSet]:
        if not clusters:
            return []

        stage = self._resolve_questions_stage()
        categories_by_cluster = {mapping.cluster_id: mapping.categories for mapping in mappings}
        question_sets: list[QuestionSet] = []

        for position, cluster in enumerate(clusters, start=1):
            label = questions_label(position, len(clusters))
            notify(StageUpdate(STEP_QUESTIONS, label))
            question_set = await stage.run_for_cluster(
                cluster,
                categories_by_cluster.get(cluster.id, []),
                lambda text, label=label: notify(StageUpdate(STEP_QUESTIONS, label, text)),
            )
            question_sets.append(question_set)

        return question_sets

    async def _persist(self, assessment: Assessment) -> None:
        try:
            store = self._store or AssessmentStore()
            await asyncio.to_thread(store.upsert, assessment)
        except Exception as exc:
            logger.exception(
                "Failed to save assessment",
                extra=sanitize_log_extra(user=assessment.user_email, error=str(exc)),
            )

    def _resolve_generator(self) -> TextGenerator:
        if self._generator is None:
            self._generator = create_text_generator()
        return self._generator

    def _resolve_clustering_stage(self) -> ClusteringStage:
        return self._clustering_stage or ClusteringStage(self._resolve_generator())

    def _resolve_mapping_stage(self) -> MappingStage:
        return self._mapping_stage or MappingStage(self._resolve_generator())

    def _resolve_questions_stage(self) -> QuestionsStage:
        return self._questions_stage or QuestionsStage(self._resolve_generator())
