"""
GeminiGateway - thin adapter over the google-genai client.

Two flavors:
- invoke(): text/JSON generation with system instruction, response schema,
  temperature, thinking budget and optional search grounding
- generate_image() / edit_image(): prompt (+ optional source image) -> image

The gateway does not retry, parse, or apply defaults. Every provider failure
is converted to TransportError with the provider's status and message kept
verbatim so the resilience layer can classify it.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..core.config import Config
from ..core.exceptions import (
    REQUEST_TIMEOUT_STATUS,
    ImageGenerationRefused,
    MissingCredential,
    TransportError,
)
from .models import GeneratedImage
from .prompt_compiler import Instruction
from .schemas import SchemaContract

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SamplingConfig:
    """
    Per-call generation settings.

    Attributes:
        model_key: Config.get_model() key selecting the model variant
        temperature: Sampling temperature (None = provider default)
        thinking_budget: Reasoning-depth hint in tokens (None = provider default)
        search_grounding: Enable Google Search grounding
    """
    model_key: str = "script"
    temperature: Optional[float] = None
    thinking_budget: Optional[int] = None
    search_grounding: bool = False


class GeminiGateway:
    """
    Stateless Gemini adapter.

    The API key is checked on every call, not at construction, so a missing
    key surfaces as MissingCredential on the operation that needed it.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the gateway.

        Args:
            api_key: Gemini API key (if None, uses Config.GEMINI_API_KEY)
            client: Pre-built genai.Client (tests inject a stub)
            timeout_seconds: Per-attempt timeout (default Config.REQUEST_TIMEOUT_SECONDS)
        """
        self.api_key = api_key if api_key is not None else Config.GEMINI_API_KEY
        self._client = client
        self.timeout_seconds = timeout_seconds or Config.REQUEST_TIMEOUT_SECONDS

    def _get_client(self):
        if not self.api_key and self._client is None:
            raise MissingCredential()
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    # =========================================================================
    # Text / JSON
    # =========================================================================

    async def invoke(
        self,
        instruction: Instruction,
        schema: Optional[SchemaContract] = None,
        sampling: Optional[SamplingConfig] = None,
    ) -> str:
        """
        Run one generation and return the raw response text.

        Args:
            instruction: Prompt, system instruction and attachments
            schema: Output contract; when given the model is asked for JSON of this shape
            sampling: Model variant and sampling settings

        Returns:
            Raw text (may be empty; the normalizer decides what that means)

        Raises:
            MissingCredential: If no API key is configured
            TransportError: On any provider, network or timeout failure
        """
        client = self._get_client()
        sampling = sampling or SamplingConfig()
        model = Config.get_model(sampling.model_key)

        config_kwargs = {
            "system_instruction": instruction.system_instruction,
            "temperature": sampling.temperature,
        }
        if sampling.thinking_budget is not None:
            config_kwargs["thinking_config"] = types.ThinkingConfig(
                thinking_budget=sampling.thinking_budget
            )
        if sampling.search_grounding:
            # Controlled JSON output is not combined with tools; the normalizer handles the reply
            config_kwargs["tools"] = [types.Tool(google_search=types.GoogleSearch())]
        elif schema is not None:
            config_kwargs["response_mime_type"] = "application/json"
            config_kwargs["response_schema"] = schema.response_schema

        contents = self._build_contents(instruction)

        logger.debug(
            f"Invoking {model} (schema={schema.name if schema else None}, "
            f"attachments={len(instruction.attachments)})"
        )
        response = await self._call(
            lambda: client.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(**config_kwargs),
            )
        )
        return response.text or ""

    # =========================================================================
    # Images
    # =========================================================================

    async def generate_image(self, prompt: str) -> GeneratedImage:
        """
        Generate an image from a text prompt.

        Raises:
            MissingCredential: If no API key is configured
            TransportError: On any provider, network or timeout failure
            ImageGenerationRefused: If the model answers with text only
        """
        return await self._image_call([prompt])

    async def edit_image(self, source: GeneratedImage, instruction: str) -> GeneratedImage:
        """
        Produce an edited version of `source` following `instruction`.

        Raises:
            MissingCredential: If no API key is configured
            TransportError: On any provider, network or timeout failure
            ImageGenerationRefused: If the model answers with text only
        """
        parts = [
            types.Part.from_bytes(data=source.data, mime_type=source.mime_type),
            "Generate an edited version of this image. " + instruction,
        ]
        return await self._image_call(parts)

    async def _image_call(self, contents: List[Any]) -> GeneratedImage:
        client = self._get_client()
        model = Config.get_model("image")

        response = await self._call(
            lambda: client.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"]),
            )
        )
        return self._extract_image(response)

    @staticmethod
    def _extract_image(response) -> GeneratedImage:
        text_parts = []
        candidates = getattr(response, "candidates", None) or []
        if candidates and candidates[0].content and candidates[0].content.parts:
            for part in candidates[0].content.parts:
                inline = getattr(part, "inline_data", None)
                if inline is not None and inline.data:
                    return GeneratedImage(data=inline.data, mime_type=inline.mime_type or "image/png")
                if getattr(part, "text", None):
                    text_parts.append(part.text)

        explanation = " ".join(text_parts).strip()
        logger.warning(f"Image model returned no image data: {explanation[:200]!r}")
        raise ImageGenerationRefused(explanation)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _build_contents(instruction: Instruction) -> List[Any]:
        contents: List[Any] = [instruction.prompt]
        for attachment in instruction.attachments:
            contents.append(
                types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type)
            )
        return contents

    async def _call(self, fn):
        """Run a blocking SDK call off the event loop under the per-attempt timeout."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise TransportError(
                REQUEST_TIMEOUT_STATUS,
                f"Request timed out after {self.timeout_seconds:.0f}s",
            )
        except genai_errors.APIError as e:
            raise TransportError(e.code or 0, str(e)) from e
        except (ConnectionError, OSError) as e:
            raise TransportError(0, f"{type(e).__name__}: {e}") from e
