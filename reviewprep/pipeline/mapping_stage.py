"""Stage 2: map every cluster to rubric categories for the caller's level."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from reviewprep.config.settings import settings
from reviewprep.models.assessment import RELEVANCE_TIERS, CategoryAssignment, CategoryMapping, Cluster
from reviewprep.pipeline.prompts import build_mapping_prompt
from reviewprep.pipeline.streaming import ChunkCallback, collect_stream
from reviewprep.services.llm import TextGenerator
from reviewprep.services.response_parser import parse_json_response
from reviewprep.services.rubric import category_ids, rubric_to_prompt_text

logger = logging.getLogger(__name__)

DEFAULT_RELEVANCE = "medium"


def validate_mappings(
    raw: Any,
    clusters: Sequence[Cluster],
    valid_category_ids: Sequence[str],
) -> list[CategoryMapping]:
    """Keep one mapping per known cluster and only categories from the valid set."""
    if not isinstance(raw, list):
        return []

    known_clusters = {cluster.id for cluster in clusters}
    allowed = set(valid_category_ids)
    mappings: dict[str, CategoryMapping] = {}
    rejected = 0

    for entry in raw:
        if not isinstance(entry, dict):
            continue
        cluster_id = str(entry.get("clusterId") or "")
        if cluster_id not in known_clusters or cluster_id in mappings:
            continue

        assignments: list[CategoryAssignment] = []
        seen_categories: set[str] = set()
        raw_categories = entry.get("categories") if isinstance(entry.get("categories"), list) else []
        for item in raw_categories:
            if not isinstance(item, dict):
                continue
            category_id = str(item.get("categoryId") or "")
            if category_id not in allowed or category_id in seen_categories:
                rejected += 1
                continue
            seen_categories.add(category_id)

            relevance = str(item.get("relevance") or "").lower()
            if relevance not in RELEVANCE_TIERS:
                relevance = DEFAULT_RELEVANCE
            assignments.append(
                CategoryAssignment(
                    category_id=category_id,
                    relevance=relevance,
                    evidence=str(item.get("evidence") or "").strip(),
                )
            )

        mappings[cluster_id] = CategoryMapping(cluster_id=cluster_id, categories=assignments)

    if rejected:
        logger.warning(f"Dropped {rejected} category assignments outside the rubric")

    # Cluster order, not model order
    return [mappings[cluster.id] for cluster in clusters if cluster.id in mappings]


class MappingStage:
    """One mapping request per pipeline run covering every cluster."""

    def __init__(self, generator: TextGenerator, *, temperature: Optional[float] = None) -> None:
        self._generator = generator
        self._temperature = temperature if temperature is not None else settings.LLM_STRUCTURED_TEMPERATURE

    async def run(
        self,
        clusters: Sequence[Cluster],
        level: str,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> list[CategoryMapping]:
        if not clusters:
            return []

        valid_ids = category_ids(level)
        prompt = build_mapping_prompt(
            clusters,
            level=level,
            rubric_text=rubric_to_prompt_text(level),
            valid_category_ids=valid_ids,
        )
        text = await collect_stream(self._generator, prompt, temperature=self._temperature, on_chunk=on_chunk)
        return validate_mappings(parse_json_response(text), clusters, valid_ids)
