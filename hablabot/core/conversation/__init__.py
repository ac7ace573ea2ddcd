"""Conversation prompts, reply generation and utterance scoring."""

from hablabot.core.conversation.generator import DialogueGenerator, GeneratedReply
from hablabot.core.conversation.prompts import (
    build_system_prompt,
    conversation_starter,
    vocabulary_nudge,
)
from hablabot.core.conversation.quality import (
    QualityStrategy,
    aggregate_word_quality,
    clamp_confidence,
    utterance_quality,
)

__all__ = [
    "DialogueGenerator",
    "GeneratedReply",
    "QualityStrategy",
    "aggregate_word_quality",
    "build_system_prompt",
    "clamp_confidence",
    "conversation_starter",
    "utterance_quality",
    "vocabulary_nudge",
]
