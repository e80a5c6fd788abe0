from __future__ import annotations

import json

import pytest

from reviewprep.models.assessment import CategoryAssignment, Cluster
from reviewprep.pipeline.questions_stage import QuestionsStage, build_question_set
from tests.fakes import FakeGenerator, make_pr


def test_build_question_set_assigns_cluster_scoped_ids() -> None:
    raw = [
        {"id": "q1", "text": "What changed for users?", "context": "impact"},
        {"id": "q2", "text": "   "},
        {"text": "Who did you work with?"},
        "stray",
    ]

    question_set = build_question_set(raw, "cluster-2")

    assert question_set.cluster_id == "cluster-2"
    assert [question.id for question in question_set.questions] == ["cluster-2-q1", "cluster-2-q2"]
    assert question_set.questions[1].text == "Who did you work with?"
    assert question_set.questions[1].context == ""


def test_build_question_set_on_parse_failure_is_empty() -> None:
    assert build_question_set([], "cluster-1").questions == []


@pytest.mark.asyncio
async def test_stage_uses_question_temperature_and_cluster_context() -> None:
    prs = [make_pr(index) for index in range(10)]
    cluster = Cluster(id="cluster-1", name="Checkout", summary="Rebuilt checkout", prs=prs)
    categories = [CategoryAssignment("shipping-prs", "high", "Shipped the new flow")]
    generator = FakeGenerator([json.dumps([{"text": "How did conversion change?", "context": "c"}])])

    question_set = await QuestionsStage(generator, temperature=0.5).run_for_cluster(cluster, categories)

    prompt = generator.prompts[0]
    assert '"Checkout"' in prompt
    assert "- PR 7 (acme/web)" in prompt
    assert "- PR 8 (acme/web)" not in prompt
    assert "shipping-prs: Shipped the new flow" in prompt
    assert generator.temperatures == [0.5]
    assert question_set.questions[0].id == "cluster-1-q1"
