"""Chat assistant session for the dashboard step.

A session keeps the model-side conversation context: two synthetic seed
turns (profile, condensed analysis, CSV excerpt and a canned acknowledgement)
followed by every completed user/model exchange.
"""

import logging
from typing import AsyncIterator, Dict, List, Optional

from core.models import AnalysisResult, BusinessProfile
from llm.prompts import CHAT_ACKNOWLEDGEMENT, PromptTemplates

logger = logging.getLogger("chat")


class TurnAccumulator:
    """Collects streamed increments for the turn currently in flight."""

    def __init__(self) -> None:
        self._parts: List[str] = []

    def add(self, chunk: str) -> str:
        self._parts.append(chunk)
        return self.text

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def increments(self) -> int:
        return len(self._parts)


class ChatSession:
    """Conversation memory bound to one (profile, data, result) triple."""

    def __init__(
        self,
        client,
        profile: BusinessProfile,
        csv_data: str,
        result: AnalysisResult,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        context_chars: int = 4000,
    ) -> None:
        self.client = client
        self.profile = profile
        self.csv_data = csv_data
        self.result = result
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.context: List[Dict[str, str]] = [
            {
                "role": "user",
                "content": PromptTemplates.chat_context(profile, result, csv_data, max_chars=context_chars),
            },
            {"role": "model", "content": CHAT_ACKNOWLEDGEMENT},
        ]

    def belongs_to(self, profile, csv_data, result) -> bool:
        """True while the session was built from these exact objects."""
        return self.profile is profile and self.csv_data is csv_data and self.result is result

    async def stream_reply(self, message: str) -> AsyncIterator[str]:
        """Yield reply increments; the exchange joins the context once the stream ends."""
        turn = self.context + [{"role": "user", "content": message}]
        accumulator = TurnAccumulator()
        async for chunk in self.client.stream(
            turn,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            model=self.model,
        ):
            accumulator.add(chunk)
            yield chunk

        self.context.append({"role": "user", "content": message})
        self.context.append({"role": "model", "content": accumulator.text})
        logger.info(
            "Chat turn completed (%d increments, %d chars)",
            accumulator.increments,
            len(accumulator.text),
        )
