"""Consume a generation stream, forwarding each delta before awaiting the next."""

from __future__ import annotations

from typing import Callable, Optional

from reviewprep.services.llm import TextGenerator

ChunkCallback = Callable[[str], None]


async def collect_stream(
    generator: TextGenerator,
    prompt: str,
    *,
    temperature: float,
    on_chunk: Optional[ChunkCallback] = None,
) -> str:
    parts: list[str] = []
    async for delta in generator.stream(prompt, temperature=temperature):
        parts.append(delta)
        if on_chunk is not None:
            on_chunk(delta)
    return "".join(parts)
