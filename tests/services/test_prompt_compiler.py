"""
Tests for the prompt compiler - persona paths, script request, transforms, thumbnails.

All functions are pure, so these tests compare compiled text directly.
"""

import base64

import pytest

from viralscript.core.exceptions import InvalidIntent
from viralscript.personas import load_default_registry
from viralscript.services.models import (
    GeneratorConfig,
    ReferenceImage,
    SponsorInfo,
    SummaryLength,
    ThumbnailStyle,
)
from viralscript.services.prompt_compiler import (
    AutoIntent,
    BlendIntent,
    ManualIntent,
    SELECTION_RULES,
    TransformKind,
    compile_auto_selection_instruction,
    compile_blend_instruction,
    compile_intent,
    compile_manual_instruction,
    compile_script_request,
    compile_thumbnail_prompt,
    compile_transform,
    duration_guidance,
    language_instruction,
    truncate_text,
)

REGISTRY = load_default_registry()
DHRUV = REGISTRY.get_persona("dhruvrathee")
MRBEAST = REGISTRY.get_persona("mrbeast")
NITISH = REGISTRY.get_persona("nitishrajput")

SAMPLE_CANVAS_TEXT = "First paragraph.\n\nSecond paragraph.\n\nThird paragraph."


class TestManualInstruction:
    def test_contains_all_enhancement_layers(self):
        system = compile_manual_instruction(DHRUV).system_instruction
        for layer in (
            "SCRIPT QUALITY ANALYZER",
            "REAL-TIME CLARITY ENHANCER",
            "STYLE AUTHENTICITY LOCK",
            "DYNAMIC HOOK GENERATOR",
            "DEEP RESEARCH MODE",
        ):
            assert layer in system

    def test_embeds_persona_voice(self):
        system = compile_manual_instruction(DHRUV).system_instruction
        assert DHRUV.name in system
        assert DHRUV.bio.archetype in system
        assert DHRUV.bio.voice.vocabulary in system

    def test_override_appended_last(self):
        system = compile_manual_instruction(DHRUV, "Mention the 1991 reforms.").system_instruction
        assert system.rstrip().endswith("Mention the 1991 reforms.")
        assert "USER OVERRIDE" in system

    def test_blank_override_ignored(self):
        assert "USER OVERRIDE" not in compile_manual_instruction(DHRUV, "   ").system_instruction


class TestAutoSelectionInstruction:
    def test_same_input_same_text(self):
        candidates = REGISTRY.list_personas()
        first = compile_auto_selection_instruction("Why interest rates rise", candidates)
        second = compile_auto_selection_instruction("Why interest rates rise", candidates)
        assert first == second
        assert first.system_instruction == second.system_instruction

    def test_no_candidates_rejected(self):
        with pytest.raises(InvalidIntent):
            compile_auto_selection_instruction("anything", [])

    def test_forbids_rotation_and_requires_selection_fields(self):
        system = compile_auto_selection_instruction("topic", REGISTRY.list_personas()).system_instruction
        assert "NO RANDOMNESS" in system
        assert "selectedId" in system
        assert "alternatives" in system

    def test_rules_limited_to_candidates(self):
        system = compile_auto_selection_instruction("topic", [DHRUV, MRBEAST]).system_instruction
        assert "Spectacle / Money Challenges -> MrBeast" in system
        assert "Veritasium" not in system

    def test_topic_truncated_with_marker(self):
        system = compile_auto_selection_instruction("x" * 50, [DHRUV], char_limit=10).system_instruction
        assert ("x" * 10 + "...[TRUNCATED]") in system
        assert "x" * 11 not in system

    def test_rule_table_is_data(self):
        assert all(rule.persona_ids for rule in SELECTION_RULES)


class TestBlendInstruction:
    def test_three_secondaries_named(self):
        secondaries = [REGISTRY.get_persona(pid) for pid in ("mrbeast", "raftar", "veritasium")]
        system = compile_blend_instruction(DHRUV, secondaries).system_instruction
        for persona in secondaries:
            assert persona.name in system
        assert "CONFLICT RESOLUTION" in system
        assert "blendMetadata" in system

    def test_four_secondaries_rejected(self):
        secondaries = [REGISTRY.get_persona(pid) for pid in ("mrbeast", "raftar", "veritasium", "nitishrajput")]
        with pytest.raises(InvalidIntent):
            compile_blend_instruction(DHRUV, secondaries)

    def test_empty_secondaries_rejected(self):
        with pytest.raises(InvalidIntent):
            compile_blend_instruction(DHRUV, [])

    def test_primary_cannot_be_secondary(self):
        with pytest.raises(InvalidIntent):
            compile_blend_instruction(DHRUV, [DHRUV])

    def test_duplicate_secondaries_rejected(self):
        with pytest.raises(InvalidIntent):
            compile_blend_instruction(DHRUV, [MRBEAST, MRBEAST])


class TestCompileIntent:
    def test_dispatch(self):
        assert compile_intent(ManualIntent(DHRUV)) == compile_manual_instruction(DHRUV)
        assert compile_intent(BlendIntent(DHRUV, (MRBEAST,))) == compile_blend_instruction(DHRUV, [MRBEAST])
        assert compile_intent(AutoIntent((DHRUV,)), topic="t") == compile_auto_selection_instruction("t", [DHRUV])


class TestScriptRequest:
    def _make_config(self, **overrides):
        data = {"topic_or_script": "Why interest rates rise"}
        data.update(overrides)
        return GeneratorConfig(**data)

    def test_basic_lines(self):
        instruction = compile_script_request(self._make_config(), compile_manual_instruction(DHRUV))
        assert "TOPIC: Why interest rates rise" in instruction.prompt
        assert "PLATFORM: YouTube Shorts" in instruction.prompt
        assert "(~150 words)" in instruction.prompt
        assert instruction.system_instruction == compile_manual_instruction(DHRUV).system_instruction
        assert instruction.attachments == ()

    def test_sponsor_only_when_enabled(self):
        off = compile_script_request(
            self._make_config(sponsor_info=SponsorInfo(enabled=False, name="Acme")),
            compile_manual_instruction(DHRUV),
        )
        on = compile_script_request(
            self._make_config(sponsor_info=SponsorInfo(enabled=True, name="Acme", product="App", message="Try it")),
            compile_manual_instruction(DHRUV),
        )
        assert "SPONSOR" not in off.prompt
        assert "SPONSOR: Acme (App) - Try it" in on.prompt

    def test_reference_images_become_attachments(self):
        image = ReferenceImage(data=base64.b64encode(b"abc").decode(), mime_type="image/jpeg")
        instruction = compile_script_request(
            self._make_config(reference_images=[image]), compile_manual_instruction(DHRUV)
        )
        assert len(instruction.attachments) == 1
        assert instruction.attachments[0].data == b"abc"
        assert instruction.attachments[0].mime_type == "image/jpeg"
        assert "Reference images are attached" in instruction.prompt

    def test_long_topic_truncated(self):
        instruction = compile_script_request(
            self._make_config(topic_or_script="y" * 40), compile_manual_instruction(DHRUV), char_limit=20
        )
        assert "y" * 20 + "...[TRUNCATED FOR LENGTH]" in instruction.prompt

    def test_dialect_and_structure_lines(self):
        instruction = compile_script_request(
            self._make_config(language="Arabic", arabic_dialect="Levantine", duration="2 Minutes (Explainer)"),
            compile_manual_instruction(DHRUV),
        )
        assert "LANGUAGE: Arabic (Dialect: Levantine)" in instruction.prompt
        assert "(~320 words)" in instruction.prompt
        assert "STRUCTURE: Linear: Problem" in instruction.prompt


class TestLanguageAndDuration:
    def test_urdu_proper(self):
        assert "Nastaliq" in language_instruction("Urdu (Proper)")

    def test_roman_urdu(self):
        assert "brackets" in language_instruction("Urdu (Roman + Script)")

    def test_dialect(self):
        assert language_instruction("Arabic", "Egyptian") == "LANGUAGE: Arabic (Dialect: Egyptian)"

    def test_plain(self):
        assert language_instruction("English") == "LANGUAGE: English"

    def test_unknown_duration_uses_shorts(self):
        assert duration_guidance("3 Hours") == duration_guidance("60 Seconds (Shorts)")

    def test_match_original_length(self):
        assert duration_guidance("Match Original Length") == (0, "Mirror input structure")

    def test_truncate_text_short_input_untouched(self):
        assert truncate_text("abc", 10, "...") == "abc"


class TestTransforms:
    def test_tone_change_preserves_structure(self):
        prompt = compile_transform(
            TransformKind.TONE_CHANGE, SAMPLE_CANVAS_TEXT, {"target_tone": "Energetic"}
        ).prompt
        assert '"Energetic"' in prompt
        assert "paragraph" in prompt
        assert SAMPLE_CANVAS_TEXT in prompt

    def test_style_change_uses_persona(self):
        prompt = compile_transform(
            TransformKind.STYLE_CHANGE, SAMPLE_CANVAS_TEXT, {"target_persona": MRBEAST}
        ).prompt
        assert f"Ghostwriter for {MRBEAST.name}" in prompt

    def test_summarize_lengths(self):
        prompt = compile_transform(
            TransformKind.SUMMARIZE, SAMPLE_CANVAS_TEXT, {"target_length": SummaryLength.SHORT}
        ).prompt
        assert "Max 150 words" in prompt

    def test_summarize_accepts_string_length(self):
        prompt = compile_transform(TransformKind.SUMMARIZE, SAMPLE_CANVAS_TEXT, {"target_length": "Detailed"}).prompt
        assert "80%" in prompt

    def test_summarize_unknown_length(self):
        with pytest.raises(InvalidIntent):
            compile_transform(TransformKind.SUMMARIZE, SAMPLE_CANVAS_TEXT, {"target_length": "Tiny"})

    def test_questions_are_additive(self):
        prompt = compile_transform(TransformKind.ADD_REFLECTIVE_QUESTIONS, SAMPLE_CANVAS_TEXT).prompt
        assert "ADDITIVE ONLY" in prompt

    def test_grammar_preserves_voice(self):
        prompt = compile_transform(TransformKind.GRAMMAR_FIX, SAMPLE_CANVAS_TEXT, {"voice_name": "Naval"}).prompt
        assert "Preserve Naval's voice" in prompt

    def test_missing_parameter(self):
        with pytest.raises(InvalidIntent):
            compile_transform(TransformKind.TONE_CHANGE, SAMPLE_CANVAS_TEXT, {})

    def test_empty_source(self):
        with pytest.raises(InvalidIntent):
            compile_transform(TransformKind.GRAMMAR_FIX, "  ", {"voice_name": "Naval"})


class TestThumbnailPrompt:
    def _style(self):
        return ThumbnailStyle(prompt_structure="noir", dominant_colors="gold", composition="centered", elements=["a", "b"])

    def test_urdu_font_rule(self):
        prompt = compile_thumbnail_prompt(DHRUV, self._style(), "Inflation", "WHY?", "Urdu (Proper)")
        assert "Nastaliq" in prompt

    def test_nitish_serif_rule(self):
        prompt = compile_thumbnail_prompt(NITISH, self._style(), "Justice", "WHY?", "English")
        assert "Serif font" in prompt
        assert "Sans-Serif" not in prompt

    def test_default_font_and_aspect(self):
        prompt = compile_thumbnail_prompt(MRBEAST, self._style(), "Island", "$1M", "English", aspect_ratio="9:16")
        assert "Sans-Serif" in prompt
        assert "Aspect Ratio: 9:16" in prompt
        assert "Mandatory Elements: a, b." in prompt
