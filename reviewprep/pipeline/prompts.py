"""Prompt builders for the clustering, mapping and question stages."""

from __future__ import annotations

import json
from typing import Any, Sequence

from reviewprep.models.assessment import CategoryAssignment, Cluster
from reviewprep.models.pull_request import PullRequest

BODY_SNIPPET_CHARS = 200
MAPPING_TITLES_PER_CLUSTER = 10
QUESTION_PRS_PER_CLUSTER = 8


def summarize_prs_for_clustering(prs: Sequence[PullRequest]) -> list[dict[str, Any]]:
    return [
        {
            "index": index,
            "title": pr.title,
            "repo": pr.repo,
            "mergedAt": pr.merged_at,
            "additions": pr.additions,
            "deletions": pr.deletions,
            "bodySnippet": (pr.body or "")[:BODY_SNIPPET_CHARS],
        }
        for index, pr in enumerate(prs)
    ]


def summarize_clusters_for_mapping(clusters: Sequence[Cluster]) -> list[dict[str, Any]]:
    summaries = []
    for cluster in clusters:
        repos = list(dict.fromkeys(pr.repo for pr in cluster.prs))
        summaries.append(
            {
                "id": cluster.id,
                "name": cluster.name,
                "summary": cluster.summary,
                "prCount": len(cluster.prs),
                "repos": repos,
                "prTitles": [pr.title for pr in cluster.prs][:MAPPING_TITLES_PER_CLUSTER],
            }
        )
    return summaries


def build_clustering_prompt(prs: Sequence[PullRequest]) -> str:
    pr_summaries = json.dumps(summarize_prs_for_clustering(prs), indent=2)
    return f"""You are analyzing a developer's pull requests to cluster them into logical projects or work streams.

Given these PRs, group them into clusters based on:
- Same repository and related functionality
- Similar PR title patterns (e.g., all related to "checkout", "auth", etc.)
- Time proximity (PRs close in time on the same topic)
- Related topics or features (even across repos)

PRs:
{pr_summaries}

Respond with ONLY valid JSON - no markdown, no code fences. Use this exact structure:
[
  {{
    "id": "cluster-1",
    "name": "Short descriptive project name",
    "summary": "2-3 sentence summary of what this cluster of work accomplished",
    "prIndices": [0, 3, 7]
  }}
]

Rules:
- Every PR must belong to exactly one cluster
- Use the PR index numbers from the input
- Aim for 3-8 clusters (fewer if the work is focused, more if diverse)
- Name clusters after the project/feature, not the repo
- If a PR doesn't clearly fit a group, create a "Miscellaneous" cluster"""


def build_mapping_prompt(
    clusters: Sequence[Cluster],
    *,
    level: str,
    rubric_text: str,
    valid_category_ids: Sequence[str],
) -> str:
    cluster_summaries = json.dumps(summarize_clusters_for_mapping(clusters), indent=2)
    return f"""You are mapping a developer's project clusters to Impact Handbook categories for a {level} engineer.

Impact Handbook for {level}:
{rubric_text}

Valid category IDs: {json.dumps(list(valid_category_ids))}

Project clusters:
{cluster_summaries}

For each cluster, determine which handbook categories are most relevant based on the work described.

Respond with ONLY valid JSON - no markdown, no code fences:
[
  {{
    "clusterId": "cluster-1",
    "categories": [
      {{
        "categoryId": "shipping-prs",
        "relevance": "high",
        "evidence": "Brief explanation of why this category applies"
      }}
    ]
  }}
]

Rules:
- Only use category IDs from the valid list above
- Assign 2-4 categories per cluster
- Relevance must be "high", "medium", or "low"
- Evidence should be 1 sentence referencing the cluster's work
- Consider the {level} level - focus on categories that match level expectations"""


def build_questions_prompt(cluster: Cluster, categories: Sequence[CategoryAssignment]) -> str:
    pr_lines = "\n".join(f"- {pr.title} ({pr.repo})" for pr in cluster.prs[:QUESTION_PRS_PER_CLUSTER])
    category_lines = "\n".join(f"- {item.category_id}: {item.evidence}" for item in categories)
    return f"""You are helping a developer prepare for their performance review by generating self-reflection questions.

Project: "{cluster.name}"
Summary: {cluster.summary}

PRs in this project:
{pr_lines}

Handbook categories this project maps to:
{category_lines}

Generate 2-4 reflection questions that help the developer articulate their impact. Questions should:
- Reference specific PRs or work from this project
- Cover business/user impact, collaboration approach, and challenges/learnings
- Be open-ended to prompt thoughtful narrative answers
- Help the developer connect their technical work to broader impact

Respond with ONLY valid JSON - no markdown, no code fences:
[
  {{
    "id": "q1",
    "text": "The question text",
    "context": "Brief context about why this question matters"
  }}
]"""
