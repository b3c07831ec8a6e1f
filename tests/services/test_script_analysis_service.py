"""
Tests for ScriptAnalysisService.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from viralscript.core.exceptions import MalformedResponse
from viralscript.personas import load_default_registry
from viralscript.services.models import (
    AnalysisResult,
    CitationType,
    ExperimentType,
    ScriptDocument,
    Segment,
    Severity,
    ViralityLabel,
)
from viralscript.services.orchestration import OperationRunner
from viralscript.services.resilience import RetryPolicy
from viralscript.services.schemas import ANALYSIS_RESULT, DIRECTOR_PLAN, SIMULATION_RESULT
from viralscript.services.script_analysis_service import ScriptAnalysisService

SAMPLE_DOCUMENT = ScriptDocument(
    id="doc-1",
    segments=[
        Segment(visual="Fed building", audio="Every rate hike starts with one number."),
        Segment(visual="Chart", audio="That number is inflation."),
    ],
)


def _make_service(*responses):
    gateway = MagicMock()
    gateway.invoke = AsyncMock(side_effect=[json.dumps(r) if isinstance(r, dict) else r for r in responses])
    runner = OperationRunner(gateway, RetryPolicy(max_attempts=3), sleep=AsyncMock())
    return ScriptAnalysisService(runner), gateway


class TestAnalyzeScript:
    @pytest.mark.asyncio
    async def test_empty_document_is_neutral_without_call(self):
        service, gateway = _make_service()

        result = await service.analyze_script(ScriptDocument(segments=[]))

        assert result == AnalysisResult.neutral()
        gateway.invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_defaults_fill_missing_fields(self):
        service, gateway = _make_service({"hookScore": 72})

        result = await service.analyze_script(SAMPLE_DOCUMENT)

        assert result.hook_score == 72
        assert result.retention_data == []
        assert result.safety_flags == []
        assert result.monetization_risks == []
        instruction, schema, sampling = gateway.invoke.await_args.args
        assert schema is ANALYSIS_RESULT
        assert sampling.model_key == "analysis"
        assert "Every rate hike" in instruction.prompt

    @pytest.mark.asyncio
    async def test_scores_clamped_and_enums_normalized(self):
        service, _ = _make_service(
            {
                "hookScore": 130,
                "truthScore": 88,
                "viralityLabel": "viral",
                "safetyFlags": [{"severity": "Medium", "reason": "Unverified statistic"}],
            }
        )

        result = await service.analyze_script(SAMPLE_DOCUMENT)

        assert result.hook_score == 100.0
        assert result.virality_label == ViralityLabel.VIRAL
        assert result.safety_flags[0].severity == Severity.MEDIUM

    @pytest.mark.asyncio
    async def test_truncated_reply_is_malformed(self):
        service, _ = _make_service('{"hookScore": 72, "retentionData": [')
        with pytest.raises(MalformedResponse):
            await service.analyze_script(SAMPLE_DOCUMENT)


class TestEnrichmentArtifacts:
    @pytest.mark.asyncio
    async def test_simulate_audience(self):
        service, gateway = _make_service(
            {"retentionHeatmap": [{"second": 3, "score": 95}], "predictedRetention": 61.5}
        )

        result = await service.simulate_audience(SAMPLE_DOCUMENT)

        assert result.retention_heatmap[0].score == 95
        assert result.personas == []
        assert result.predicted_retention == 61.5
        assert gateway.invoke.await_args.args[1] is SIMULATION_RESULT

    @pytest.mark.asyncio
    async def test_director_plan(self):
        service, gateway = _make_service(
            {"scenes": [{"id": "s1", "cameraDirection": "Closeup"}], "musicMood": "Tense"}
        )

        plan = await service.generate_director_plan(SAMPLE_DOCUMENT)

        assert plan.scenes[0].camera_direction == "Closeup"
        assert plan.thumbnails == []
        assert plan.music_mood == "Tense"
        assert gateway.invoke.await_args.args[1] is DIRECTOR_PLAN

    @pytest.mark.asyncio
    async def test_evidence_map(self):
        service, _ = _make_service(
            {"citations": [{"type": "Official", "sourceName": "Federal Reserve", "context": "FOMC statement"}]}
        )

        citations = await service.generate_evidence_map(SAMPLE_DOCUMENT)

        assert citations[0].type == CitationType.OFFICIAL
        assert citations[0].source_name == "Federal Reserve"

    @pytest.mark.asyncio
    async def test_experiment_variants(self):
        persona = load_default_registry().get_persona("dhruvrathee")
        service, gateway = _make_service(
            {"variants": [{"id": "v1", "type": "Tone Shift", "predictedWinner": True, "confidence": 70}]}
        )

        variants = await service.generate_experiment_variants(SAMPLE_DOCUMENT, persona)

        assert variants[0].type == ExperimentType.TONE_SHIFT
        assert variants[0].predicted_winner
        assert persona.name in gateway.invoke.await_args.args[0].prompt
