"""
Operation Runner - the shared pipeline behind every orchestration operation.

    Compiling -> Invoking -> (Retrying)* -> Normalizing -> Validating -> Done | Failed

Operation services compile their instruction and hand it here together with
the output contract. The runner is the only caller of the gateway: it applies
the retry policy, extracts JSON, validates it into the contract's model, and
records one logfire span per call. Nothing is cached between calls.

A failing operation re-raises the original typed error with `operation` set,
so callers can tell credential, transport, malformed and refused failures apart.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import logfire

from ..core.exceptions import MalformedResponse, ViralScriptError
from .gemini_gateway import GeminiGateway, SamplingConfig
from .models import GeneratedImage, StudioModel
from .prompt_compiler import Instruction
from .resilience import RetryPolicy, call_with_retry
from .response_normalizer import extract_json_with_strategy
from .schemas import SchemaContract

logger = logging.getLogger(__name__)


class OperationRunner:
    """Runs one model call per operation invocation under the retry policy."""

    def __init__(
        self,
        gateway: GeminiGateway,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            gateway: Model gateway (tests pass a fake with the same methods)
            policy: Retry policy applied to every call
            sleep: Backoff sleep (tests inject a recorder)
        """
        self.gateway = gateway
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def run_json(
        self,
        operation: str,
        instruction: Instruction,
        contract: SchemaContract,
        sampling: Optional[SamplingConfig] = None,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> StudioModel:
        """
        Invoke the model for a schema-constrained artifact.

        Returns:
            Instance of `contract.model`, with every list field populated

        Raises:
            ViralScriptError: Any typed failure, with `operation` set
        """
        with logfire.span(operation, operation=operation, schema=contract.name):
            try:
                raw = await self._invoke(operation, cancel_token, self.gateway.invoke, instruction, contract, sampling)
                data, strategy = extract_json_with_strategy(raw)
                result = contract.validate(data)
            except ViralScriptError as e:
                self._mark_failed(operation, e)
                raise

            logger.info(f"{operation} completed ({contract.name}, parsed via {strategy.value})")
            return result

    async def run_text(
        self,
        operation: str,
        instruction: Instruction,
        sampling: Optional[SamplingConfig] = None,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Invoke the model for free text.

        Raises:
            MalformedResponse: If the model returns nothing
            ViralScriptError: Any other typed failure, with `operation` set
        """
        with logfire.span(operation, operation=operation):
            try:
                raw = await self._invoke(operation, cancel_token, self.gateway.invoke, instruction, None, sampling)
                text = raw.strip()
                if not text:
                    raise MalformedResponse(raw, reason="The AI returned an empty response")
            except ViralScriptError as e:
                self._mark_failed(operation, e)
                raise

            logger.info(f"{operation} completed ({len(text)} chars)")
            return text

    async def run_image(
        self,
        operation: str,
        call: Callable[[], Awaitable[GeneratedImage]],
        cancel_token: Optional[asyncio.Event] = None,
    ) -> GeneratedImage:
        """
        Invoke an image gateway call (generate or edit).

        Raises:
            ImageGenerationRefused: If the model answered with text only
            ViralScriptError: Any other typed failure, with `operation` set
        """
        with logfire.span(operation, operation=operation):
            try:
                image = await self._invoke(operation, cancel_token, call)
            except ViralScriptError as e:
                self._mark_failed(operation, e)
                raise

            logger.info(f"{operation} completed ({image.mime_type}, {len(image.data)} bytes)")
            return image

    async def _invoke(self, operation: str, cancel_token: Optional[asyncio.Event], fn, *args):
        logger.info(f"Starting {operation}")
        return await call_with_retry(
            lambda: fn(*args),
            self.policy,
            operation_name=operation,
            cancel_token=cancel_token,
            sleep=self._sleep,
        )

    @staticmethod
    def _mark_failed(operation: str, error: ViralScriptError) -> None:
        if error.operation is None:
            error.operation = operation
        logger.error(f"{operation} failed: {type(error).__name__}: {error}")
