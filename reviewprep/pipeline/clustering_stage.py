"""Stage 1: partition pull requests into named project clusters."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from reviewprep.config.settings import settings
from reviewprep.models.assessment import Cluster
from reviewprep.models.pull_request import PullRequest
from reviewprep.pipeline.prompts import build_clustering_prompt
from reviewprep.pipeline.streaming import ChunkCallback, collect_stream
from reviewprep.services.llm import TextGenerator
from reviewprep.services.response_parser import parse_json_response

logger = logging.getLogger(__name__)

UNASSIGNED_CLUSTER_ID = "cluster-unassigned"
UNASSIGNED_CLUSTER_NAME = "Unclustered"


def resolve_clusters(raw: Any, prs: Sequence[PullRequest]) -> list[Cluster]:
    """Map the model's `prIndices` back onto PR objects.

    Out-of-range and non-integer indices are dropped, an index claimed by
    more than one cluster stays with the first, and clusters left empty are
    dropped. When at least one cluster survives, PRs the model never assigned
    are collected into a trailing "Unclustered" cluster.
    """
    if not isinstance(raw, list):
        return []

    clusters: list[Cluster] = []
    assigned: set[int] = set()
    used_ids: set[str] = set()

    for position, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            continue

        raw_indices = entry.get("prIndices") if isinstance(entry.get("prIndices"), list) else []
        members: list[PullRequest] = []
        for index in raw_indices:
            if isinstance(index, bool) or not isinstance(index, int):
                continue
            if not 0 <= index < len(prs) or index in assigned:
                continue
            assigned.add(index)
            members.append(prs[index])

        if not members:
            continue

        cluster_id = str(entry.get("id") or "").strip()
        if not cluster_id or cluster_id in used_ids or cluster_id == UNASSIGNED_CLUSTER_ID:
            cluster_id = _next_cluster_id(position, used_ids)
        used_ids.add(cluster_id)

        clusters.append(
            Cluster(
                id=cluster_id,
                name=str(entry.get("name") or "").strip() or "Untitled project",
                summary=str(entry.get("summary") or "").strip(),
                prs=members,
            )
        )

    unassigned = [pr for index, pr in enumerate(prs) if index not in assigned]
    if clusters and unassigned:
        logger.warning(f"Clustering left {len(unassigned)} of {len(prs)} PRs unassigned; adding catch-all cluster")
        clusters.append(
            Cluster(
                id=UNASSIGNED_CLUSTER_ID,
                name=UNASSIGNED_CLUSTER_NAME,
                summary="Pull requests the clustering step did not place in any project.",
                prs=unassigned,
            )
        )

    return clusters


def _next_cluster_id(position: int, used_ids: set[str]) -> str:
    candidate = f"cluster-{position}"
    suffix = 1
    while candidate in used_ids:
        suffix += 1
        candidate = f"cluster-{position}-{suffix}"
    return candidate


class ClusteringStage:
    """Streams one clustering request and resolves the parsed result."""

    def __init__(self, generator: TextGenerator, *, temperature: Optional[float] = None) -> None:
        self._generator = generator
        self._temperature = temperature if temperature is not None else settings.LLM_STRUCTURED_TEMPERATURE

    async def run(self, prs: Sequence[PullRequest], on_chunk: Optional[ChunkCallback] = None) -> list[Cluster]:
        if not prs:
            return []

        text = await collect_stream(
            self._generator,
            build_clustering_prompt(prs),
            temperature=self._temperature,
            on_chunk=on_chunk,
        )
        clusters = resolve_clusters(parse_json_response(text), prs)
        logger.info(f"Clustered {len(prs)} PRs into {len(clusters)} projects")
        return clusters
