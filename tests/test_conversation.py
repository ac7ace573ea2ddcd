import random

import pytest

from hablabot.core.conversation.generator import DialogueGenerator
from hablabot.core.conversation.prompts import (
    GENERIC_STARTERS,
    SCENARIOS,
    build_system_prompt,
    conversation_starter,
    vocabulary_nudge,
)
from hablabot.schemas import TargetWord
from hablabot.utils.exceptions import EmptyInputError, GenerationError


def test_build_system_prompt_includes_scenario_level_and_targets():
    prompt = build_system_prompt(
        "restaurant",
        "intermediate",
        [TargetWord(id="w1", spanish="la cuenta", english="the bill")],
    )

    assert "Eres María" in prompt
    assert "ESCENARIO: Restaurante" in prompt
    assert "- Practicar pedir comida y bebida" in prompt
    assert "NIVEL: Intermedio" in prompt
    assert "- la cuenta: the bill" in prompt


def test_build_system_prompt_tolerates_unknown_values():
    prompt = build_system_prompt("space", "expert")

    assert "ESCENARIO" not in prompt
    assert "NIVEL" not in prompt
    assert "VOCABULARIO OBJETIVO" not in prompt


def test_conversation_starter_uses_scenario_and_difficulty():
    rng = random.Random(3)

    assert conversation_starter("travel", "advanced", rng) in SCENARIOS["travel"].starters["advanced"]
    assert conversation_starter("health", "unknown", rng) in SCENARIOS["health"].starters["beginner"]
    assert conversation_starter(None, "beginner", rng) in GENERIC_STARTERS


def test_vocabulary_nudge_mentions_word():
    nudge = vocabulary_nudge(TargetWord(id="w1", spanish="propina", english="tip"), random.Random(1))

    assert '"propina"' in nudge


def test_generator_keeps_history_and_trims_window(llm):
    generator = DialogueGenerator(llm, max_history_messages=3)
    generator.open("SYSTEM", "¡Hola!")

    for text in ("uno", "dos", "tres"):
        generator.reply(f"  {text}  ")

    sent = llm.calls[-1]
    assert sent[0] == {"role": "system", "content": "SYSTEM"}
    assert len(sent) == 4
    assert sent[-1] == {"role": "user", "content": "tres"}
    assert [m.role for m in generator.history()][:2] == ["assistant", "user"]
    assert len(generator.history()) == 7


def test_generator_rolls_back_user_turn_on_failure(llm):
    generator = DialogueGenerator(llm)
    generator.open("SYSTEM", "¡Hola!")
    llm.should_fail = True

    with pytest.raises(GenerationError):
        generator.reply("hola")
    assert [m.content for m in generator.history()] == ["¡Hola!"]


def test_generator_rejects_empty_input_and_missing_service():
    generator = DialogueGenerator(None)
    generator.open("SYSTEM", "¡Hola!")

    with pytest.raises(EmptyInputError):
        generator.reply("   ")
    with pytest.raises(GenerationError):
        generator.reply("hola")


def test_extend_last_reply(llm):
    generator = DialogueGenerator(llm)
    generator.open("SYSTEM", "¡Hola!")
    generator.reply("hola")

    combined = generator.extend_last_reply("¿Y tú?")

    assert combined.endswith("¿Y tú?")
    assert generator.history()[-1].content == combined
