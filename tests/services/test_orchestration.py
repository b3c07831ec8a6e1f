"""
Tests for OperationRunner - the invoke/retry/normalize/validate pipeline.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from viralscript.core.exceptions import (
    ImageGenerationRefused,
    MalformedResponse,
    MissingCredential,
    TransportError,
)
from viralscript.services.gemini_gateway import SamplingConfig
from viralscript.services.models import GeneratedImage, ScriptPackage
from viralscript.services.orchestration import OperationRunner
from viralscript.services.prompt_compiler import Instruction
from viralscript.services.resilience import RetryPolicy
from viralscript.services.schemas import SCRIPT_PACKAGE

POLICY = RetryPolicy(max_attempts=3, base_delay=2.0, max_delay=8.0)
INSTRUCTION = Instruction(prompt="TOPIC: tides")


def _make_runner(*responses):
    gateway = MagicMock()
    gateway.invoke = AsyncMock(side_effect=list(responses))
    sleep = AsyncMock()
    return OperationRunner(gateway, POLICY, sleep=sleep), gateway, sleep


class TestRunJson:
    @pytest.mark.asyncio
    async def test_validates_into_contract_model(self):
        runner, gateway, _ = _make_runner('```json\n{"title": "T", "segments": [{"visual": "v", "audio": "a"}]}\n```')
        sampling = SamplingConfig(model_key="script", temperature=0.8)

        package = await runner.run_json("generate_script", INSTRUCTION, SCRIPT_PACKAGE, sampling)

        assert isinstance(package, ScriptPackage)
        assert package.segments[0].audio == "a"
        gateway.invoke.assert_awaited_once_with(INSTRUCTION, SCRIPT_PACKAGE, sampling)

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        runner, gateway, sleep = _make_runner(
            TransportError(503, "UNAVAILABLE"),
            TransportError(503, "UNAVAILABLE"),
            '{"title": "T"}',
        )

        package = await runner.run_json("generate_script", INSTRUCTION, SCRIPT_PACKAGE)

        assert package.title == "T"
        assert gateway.invoke.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_garbage_is_malformed_with_operation(self):
        runner, gateway, _ = _make_runner("Sorry, I cannot help with that.")

        with pytest.raises(MalformedResponse) as exc_info:
            await runner.run_json("analyze_script", INSTRUCTION, SCRIPT_PACKAGE)

        assert exc_info.value.operation == "analyze_script"
        assert exc_info.value.preview == "Sorry, I cannot help with that."
        # Malformed output is not a transport failure; no retry
        assert gateway.invoke.await_count == 1

    @pytest.mark.asyncio
    async def test_fatal_error_is_original_object(self):
        error = TransportError(400, "INVALID_ARGUMENT")
        runner, gateway, sleep = _make_runner(error)

        with pytest.raises(TransportError) as exc_info:
            await runner.run_json("generate_script", INSTRUCTION, SCRIPT_PACKAGE)

        assert exc_info.value is error
        assert error.operation == "generate_script"
        assert gateway.invoke.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_credential_surfaces(self):
        runner, _, _ = _make_runner(MissingCredential())
        with pytest.raises(MissingCredential):
            await runner.run_json("generate_script", INSTRUCTION, SCRIPT_PACKAGE)


class TestRunText:
    @pytest.mark.asyncio
    async def test_strips_text(self):
        runner, gateway, _ = _make_runner("  Rewritten.\n")
        assert await runner.run_text("canvas_grammar_fix", INSTRUCTION) == "Rewritten."
        gateway.invoke.assert_awaited_once_with(INSTRUCTION, None, None)

    @pytest.mark.asyncio
    async def test_empty_text_is_malformed(self):
        runner, _, _ = _make_runner("   ")
        with pytest.raises(MalformedResponse) as exc_info:
            await runner.run_text("canvas_summarize", INSTRUCTION)
        assert exc_info.value.operation == "canvas_summarize"


class TestRunImage:
    @pytest.mark.asyncio
    async def test_returns_image(self):
        runner, _, _ = _make_runner()
        image = GeneratedImage(data=b"png")
        call = AsyncMock(return_value=image)

        assert await runner.run_image("generate_thumbnail", call) is image

    @pytest.mark.asyncio
    async def test_refusal_not_retried(self):
        runner, _, sleep = _make_runner()
        call = AsyncMock(side_effect=ImageGenerationRefused("No."))

        with pytest.raises(ImageGenerationRefused) as exc_info:
            await runner.run_image("generate_thumbnail", call)

        assert call.await_count == 1
        assert exc_info.value.operation == "generate_thumbnail"
        sleep.assert_not_awaited()
