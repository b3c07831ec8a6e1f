"""
ScriptAnalysisService - read-only enrichment of a script snapshot.

Each operation reads the document's segments and produces a separate
artifact. None of them modifies the document, and none caches its result:
the caller decides what to keep and when to re-run.
"""

import asyncio
import logging
from typing import List, Optional

from ..core.config import Config
from .gemini_gateway import SamplingConfig
from .models import (
    AnalysisResult,
    Citation,
    DirectorPlan,
    ExperimentVariant,
    PersonaProfile,
    ScriptDocument,
    SimulationResult,
)
from .orchestration import OperationRunner
from .prompt_compiler import Instruction
from .schemas import (
    ANALYSIS_RESULT,
    CITATION_SET,
    DIRECTOR_PLAN,
    EXPERIMENT_VARIANT_SET,
    SIMULATION_RESULT,
)
from .script_document import segments_payload

logger = logging.getLogger(__name__)


class ScriptAnalysisService:
    """Analysis, audience simulation, production planning, evidence and experiments."""

    def __init__(self, runner: OperationRunner):
        self.runner = runner

    def _sampling(self) -> SamplingConfig:
        return SamplingConfig(model_key="analysis", temperature=Config.ANALYSIS_TEMPERATURE)

    async def analyze_script(
        self,
        document: ScriptDocument,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> AnalysisResult:
        """
        Virality, retention and factual-integrity analysis.

        A document with no segments gets a neutral result without a model call.
        """
        if not document.segments:
            logger.info("analyze_script: document has no segments, returning neutral analysis")
            return AnalysisResult.neutral()

        prompt = f"""Analyze this script for viral potential, retention risks, and factual integrity.
Score the hook and the factual integrity from 0 to 100, label the virality (Low, Medium or Viral),
sketch the expected retention curve, and flag monetization risks and safety concerns.

Script: {segments_payload(document.segments)}"""

        return await self.runner.run_json(
            "analyze_script",
            Instruction(prompt=prompt),
            ANALYSIS_RESULT,
            self._sampling(),
            cancel_token,
        )

    async def simulate_audience(
        self,
        document: ScriptDocument,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> SimulationResult:
        """Per-second retention heatmap, audience personas and micro-fixes."""
        prompt = f"""Simulate audience reaction for this script.
Produce a second-by-second retention heatmap, three contrasting viewer personas with the moment
each one drops off, and concrete micro-fixes for the weakest lines.

Script: {segments_payload(document.segments)}"""

        return await self.runner.run_json(
            "simulate_audience",
            Instruction(prompt=prompt),
            SIMULATION_RESULT,
            self._sampling(),
            cancel_token,
        )

    async def generate_director_plan(
        self,
        document: ScriptDocument,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> DirectorPlan:
        """Shot list, thumbnail concepts, editing notes and music mood."""
        prompt = f"""Create a director's plan for this script.
One scene per segment with timing, camera direction, audio cue, an image-generation prompt
and on-screen text. Add thumbnail concepts, editing notes and the music mood.

Script: {segments_payload(document.segments)}"""

        return await self.runner.run_json(
            "generate_director_plan",
            Instruction(prompt=prompt),
            DIRECTOR_PLAN,
            self._sampling(),
            cancel_token,
        )

    async def generate_evidence_map(
        self,
        document: ScriptDocument,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> List[Citation]:
        """Claims in the script mapped to sources."""
        prompt = f"""Identify claims in the script and provide citations.
Classify each source as News, Research, Report, Public Data or Official and grade its
reliability as High, Medium or Low.

Script: {segments_payload(document.segments)}"""

        result = await self.runner.run_json(
            "generate_evidence_map",
            Instruction(prompt=prompt),
            CITATION_SET,
            self._sampling(),
            cancel_token,
        )
        return result.citations

    async def generate_experiment_variants(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> List[ExperimentVariant]:
        """A/B test proposals (hook, tone, length) with a predicted winner."""
        prompt = f"""Propose A/B testing variants for this script by {persona.name}.
Cover a Hook A/B test, a Tone Shift and a Length change. Mark the predicted winner and give
a confidence between 0 and 100.

Script: {segments_payload(document.segments)}"""

        result = await self.runner.run_json(
            "generate_experiment_variants",
            Instruction(prompt=prompt),
            EXPERIMENT_VARIANT_SET,
            self._sampling(),
            cancel_token,
        )
        return result.variants
