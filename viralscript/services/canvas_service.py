"""
CanvasService - flat-text rewrite tools for the editing canvas.

Tools: tone change, style change (persona ghostwriting), summarize,
reflective questions, grammar check.

Each tool returns replacement text only. Nothing is committed: the caller
applies a result with CanvasHistoryState.push() and
script_document.with_user_edit().
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional

from ..core.config import Config
from .gemini_gateway import SamplingConfig
from .models import PersonaProfile, SummaryLength
from .orchestration import OperationRunner
from .prompt_compiler import TransformKind, compile_transform

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# Rewrites that keep the paragraph count; summaries may merge paragraphs
_STRUCTURE_PRESERVING = {
    TransformKind.TONE_CHANGE,
    TransformKind.STYLE_CHANGE,
}


def count_paragraphs(text: str) -> int:
    """Number of blank-line separated blocks."""
    stripped = text.strip()
    if not stripped:
        return 0
    return len(_PARAGRAPH_BREAK.split(stripped))


class CanvasService:
    """Non-committing canvas transforms."""

    def __init__(self, runner: OperationRunner):
        self.runner = runner

    async def transform(
        self,
        kind: TransformKind,
        text: str,
        params: Optional[Dict[str, Any]] = None,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> str:
        """
        Run one canvas transform.

        Args:
            kind: Which transform to run
            text: Current canvas text
            params: Transform parameter (see compile_transform)
            cancel_token: Stops further retry attempts when set

        Returns:
            Replacement text (not applied)

        Raises:
            InvalidIntent: On empty text or a missing parameter
            MalformedResponse: If the model returns no text
        """
        instruction = compile_transform(kind, text, params)
        result = await self.runner.run_text(
            f"canvas_{kind.value}",
            instruction,
            SamplingConfig(
                model_key="canvas",
                temperature=Config.CANVAS_TEMPERATURE,
                thinking_budget=Config.CANVAS_THINKING_BUDGET,
            ),
            cancel_token,
        )

        if kind in _STRUCTURE_PRESERVING:
            before, after = count_paragraphs(text), count_paragraphs(result)
            if before != after:
                logger.warning(f"canvas_{kind.value}: paragraph count changed from {before} to {after}")
        return result

    async def change_tone(self, text: str, target_tone: str, cancel_token: Optional[asyncio.Event] = None) -> str:
        return await self.transform(TransformKind.TONE_CHANGE, text, {"target_tone": target_tone}, cancel_token)

    async def change_style(
        self,
        text: str,
        target_persona: PersonaProfile,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> str:
        return await self.transform(
            TransformKind.STYLE_CHANGE, text, {"target_persona": target_persona}, cancel_token
        )

    async def summarize(
        self,
        text: str,
        target_length: SummaryLength = SummaryLength.MEDIUM,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> str:
        return await self.transform(TransformKind.SUMMARIZE, text, {"target_length": target_length}, cancel_token)

    async def add_reflective_questions(self, text: str, cancel_token: Optional[asyncio.Event] = None) -> str:
        return await self.transform(TransformKind.ADD_REFLECTIVE_QUESTIONS, text, None, cancel_token)

    async def grammar_check(
        self,
        text: str,
        voice_name: str,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> str:
        """Grammar/spelling fix that keeps `voice_name`'s voice."""
        return await self.transform(TransformKind.GRAMMAR_FIX, text, {"voice_name": voice_name}, cancel_token)
