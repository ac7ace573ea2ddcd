"""Role-tagged dialogue state and tutor reply generation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from hablabot.schemas.session import ConversationMessage
from hablabot.utils.exceptions import EmptyInputError, GenerationError


@dataclass(slots=True)
class GeneratedReply:
    """Assistant reply together with the provider that produced it."""

    text: str
    provider: str
    model: str


def _clean(text: str) -> str:
    return " ".join((text or "").split())


class DialogueGenerator:
    """Keep the message list of one conversation and ask the LLM for replies."""

    def __init__(
        self,
        llm_service: Any | None,
        *,
        max_history_messages: int = 20,
        temperature: float = 0.7,
        max_tokens: int = 150,
    ) -> None:
        self.llm_service = llm_service
        self.max_history_messages = max(1, max_history_messages)
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.messages: list[ConversationMessage] = []

    def open(self, system_prompt: str, opening_message: str) -> str:
        """Reset the dialogue with a system prompt and the tutor's first line."""

        self.messages = [
            ConversationMessage(role="system", content=system_prompt),
            ConversationMessage(role="assistant", content=opening_message),
        ]
        return opening_message

    def _prepare_messages(self) -> list[dict[str, str]]:
        system = [message for message in self.messages if message.role == "system"]
        others = [message for message in self.messages if message.role != "system"]
        window = system[:1] + others[-self.max_history_messages :]
        return [message.model_dump() for message in window]

    def reply(self, user_text: str) -> GeneratedReply:
        """Append the learner turn and return the assistant reply.

        On failure the learner turn is removed again so the history only
        contains completed exchanges.
        """

        cleaned = _clean(user_text)
        if not cleaned:
            raise EmptyInputError("No user input provided")
        if self.llm_service is None:
            raise GenerationError("LLM providers are not configured")

        self.messages.append(ConversationMessage(role="user", content=cleaned))
        try:
            result = self.llm_service.generate_chat_completion(
                self._prepare_messages(),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as exc:
            self.messages.pop()
            logger.warning("Tutor reply generation failed", error=str(exc))
            raise GenerationError("Failed to generate tutor reply", {"error": str(exc)}) from exc

        text = (result.content or "").strip()
        self.messages.append(ConversationMessage(role="assistant", content=text))
        logger.debug("Tutor reply generated", provider=result.provider, history=len(self.messages))
        return GeneratedReply(text=text, provider=result.provider, model=result.model)

    def extend_last_reply(self, text: str) -> str:
        """Append ``text`` to the latest assistant message and return the result."""

        if not self.messages or self.messages[-1].role != "assistant":
            raise GenerationError("No assistant reply to extend")
        combined = f"{self.messages[-1].content} {text}".strip()
        self.messages[-1] = ConversationMessage(role="assistant", content=combined)
        return combined

    def history(self) -> list[ConversationMessage]:
        """Return the conversation without the system prompt."""

        return [message.model_copy() for message in self.messages if message.role != "system"]


__all__ = ["DialogueGenerator", "GeneratedReply"]
