"""Tests for LLMGuard output cleaning."""

from ledgerquest.utils.sanitizer import REASONING_MAX_CHARS, LLMGuard


class TestCleanJson:
    def test_plain_object(self):
        assert LLMGuard.clean_json('{"action": "train"}') == {"action": "train"}

    def test_code_fences(self):
        raw = '```json\n{"action": "fightMonster", "reasoning": "go"}\n```'
        assert LLMGuard.clean_json(raw) == {"action": "fightMonster", "reasoning": "go"}

    def test_trailing_comma(self):
        assert LLMGuard.clean_json('{"action": "train",}') == {"action": "train"}

    def test_bare_keys(self):
        assert LLMGuard.clean_json('{action: "train", itemId: 1}') == {"action": "train", "itemId": 1}

    def test_valid_json_with_colons_in_strings_untouched(self):
        raw = '{"action": "train", "reasoning": "ratio, note: stay patient"}'
        assert LLMGuard.clean_json(raw)["reasoning"] == "ratio, note: stay patient"

    def test_non_object_rejected(self):
        assert LLMGuard.clean_json("[1, 2]") is None
        assert LLMGuard.clean_json('"train"') is None

    def test_garbage_and_empty(self):
        assert LLMGuard.clean_json("I would fight the monster.") is None
        assert LLMGuard.clean_json("") is None
        assert LLMGuard.clean_json("   ") is None


class TestSanitizeReasoning:
    def test_collapses_whitespace(self):
        assert LLMGuard.sanitize_reasoning("  odds   are\n\n good ") == "odds are good"

    def test_truncates_long_text(self):
        out = LLMGuard.sanitize_reasoning("x" * 1000)
        assert len(out) == REASONING_MAX_CHARS
        assert out.endswith("…")

    def test_refusal_blocked(self):
        assert LLMGuard.sanitize_reasoning("As an AI, I cannot decide what to do.") is None
        assert LLMGuard.sanitize_reasoning("Sorry, but I can't help with that") is None

    def test_empty(self):
        assert LLMGuard.sanitize_reasoning("") is None
        assert LLMGuard.sanitize_reasoning("   ") is None

    def test_is_refusal(self):
        assert LLMGuard.is_refusal("I am an AI and have no opinion")
        assert not LLMGuard.is_refusal("Training builds strength for later.")
