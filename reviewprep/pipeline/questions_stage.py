"""Stage 3: reflection questions for a single cluster."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from reviewprep.config.settings import settings
from reviewprep.models.assessment import CategoryAssignment, Cluster, Question, QuestionSet
from reviewprep.pipeline.prompts import build_questions_prompt
from reviewprep.pipeline.streaming import ChunkCallback, collect_stream
from reviewprep.services.llm import TextGenerator
from reviewprep.services.response_parser import parse_json_response


def build_question_set(raw: Any, cluster_id: str) -> QuestionSet:
    """Question ids are always `<clusterId>-q<n>`; ids proposed by the model are discarded."""
    entries = raw if isinstance(raw, list) else []
    texts = [
        entry
        for entry in entries
        if isinstance(entry, dict) and str(entry.get("text") or "").strip()
    ]
    return QuestionSet(
        cluster_id=cluster_id,
        questions=[
            Question(
                id=f"{cluster_id}-q{number}",
                text=str(entry["text"]).strip(),
                context=str(entry.get("context") or "").strip(),
            )
            for number, entry in enumerate(texts, start=1)
        ],
    )


class QuestionsStage:
    def __init__(self, generator: TextGenerator, *, temperature: Optional[float] = None) -> None:
        self._generator = generator
        self._temperature = temperature if temperature is not None else settings.LLM_QUESTION_TEMPERATURE

    async def run_for_cluster(
        self,
        cluster: Cluster,
        categories: Sequence[CategoryAssignment],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> QuestionSet:
        text = await collect_stream(
            self._generator,
            build_questions_prompt(cluster, categories),
            temperature=self._temperature,
            on_chunk=on_chunk,
        )
        return build_question_set(parse_json_response(text), cluster.id)
