from __future__ import annotations

import json

import pytest

from reviewprep.models.assessment import Assessment
from reviewprep.orchestrator import (
    CLUSTERING_LABEL,
    MAPPING_LABEL,
    STEP_CLUSTERING,
    STEP_MAPPING,
    STEP_QUESTIONS,
    AnalysisPipeline,
    StageUpdate,
)
from reviewprep.services.rubric import category_ids
from tests.fakes import FakeGenerator, make_pr


class RecordingStore:
    def __init__(self) -> None:
        self.saved: list[Assessment] = []

    def upsert(self, assessment: Assessment) -> None:
        self.saved.append(assessment)


class FailingStore:
    def upsert(self, assessment: Assessment) -> None:
        raise RuntimeError("database unavailable")


def _scripted_generator() -> FakeGenerator:
    valid = category_ids("C5")
    return FakeGenerator(
        [
            json.dumps(
                [
                    {"id": "cluster-1", "name": "Checkout", "summary": "s", "prIndices": [0, 2]},
                    {"id": "cluster-2", "name": "Auth", "summary": "s", "prIndices": [1]},
                ]
            ),
            json.dumps(
                [
                    {"clusterId": "cluster-1", "categories": [{"categoryId": valid[0], "relevance": "high"}]},
                    {"clusterId": "cluster-2", "categories": [{"categoryId": valid[1], "relevance": "low"}]},
                ]
            ),
            json.dumps([{"text": "Checkout question?"}]),
            json.dumps([{"text": "Auth question?"}, {"text": "Second auth question?"}]),
        ]
    )


@pytest.mark.asyncio
async def test_pipeline_runs_stages_in_order_and_persists() -> None:
    generator = _scripted_generator()
    store = RecordingStore()
    updates: list[StageUpdate] = []
    pipeline = AnalysisPipeline(generator=generator, store=store, clock=lambda: 1_700_000_000_000)

    assessment = await pipeline.run([make_pr(index) for index in range(3)], "C5", "dev@example.com", updates.append)

    labels = [(update.step, update.label) for update in updates if update.detail is None]
    assert labels == [
        (STEP_CLUSTERING, CLUSTERING_LABEL),
        (STEP_MAPPING, MAPPING_LABEL),
        (STEP_QUESTIONS, "Generating questions... (1/2)"),
        (STEP_QUESTIONS, "Generating questions... (2/2)"),
    ]
    steps = [update.step for update in updates]
    assert steps == sorted(steps)
    assert any(update.detail for update in updates if update.step == STEP_MAPPING)

    assert [cluster.id for cluster in assessment.clusters] == ["cluster-1", "cluster-2"]
    assert [mapping.cluster_id for mapping in assessment.mappings] == ["cluster-1", "cluster-2"]
    assert [len(item.questions) for item in assessment.questions] == [1, 2]
    assert assessment.questions[1].questions[1].id == "cluster-2-q2"
    assert assessment.narrative is None
    assert assessment.generated_at == 1_700_000_000_000
    assert store.saved == [assessment]

    assert generator.max_active == 1
    assert generator.temperatures == [0.3, 0.3, 0.5, 0.5]


@pytest.mark.asyncio
async def test_persistence_failure_does_not_fail_the_run() -> None:
    pipeline = AnalysisPipeline(generator=_scripted_generator(), store=FailingStore())

    assessment = await pipeline.run([make_pr(index) for index in range(3)], "C5", "dev@example.com")

    assert len(assessment.clusters) == 2


@pytest.mark.asyncio
async def test_empty_input_skips_generation_but_still_persists() -> None:
    generator = FakeGenerator([])
    store = RecordingStore()
    updates: list[StageUpdate] = []

    assessment = await AnalysisPipeline(generator=generator, store=store).run([], "C4", "dev@example.com", updates.append)

    assert assessment.clusters == [] and assessment.mappings == [] and assessment.questions == []
    assert generator.prompts == []
    assert [update.step for update in updates] == [STEP_CLUSTERING, STEP_MAPPING]
    assert len(store.saved) == 1


@pytest.mark.asyncio
async def test_unparseable_clustering_yields_empty_assessment() -> None:
    generator = FakeGenerator(["Sorry, I can't help with that."])
    store = RecordingStore()

    assessment = await AnalysisPipeline(generator=generator, store=store).run(
        [make_pr(0), make_pr(1)], "C6", "dev@example.com"
    )

    assert assessment.clusters == []
    assert len(generator.prompts) == 1
