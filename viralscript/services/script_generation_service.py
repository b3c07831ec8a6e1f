"""
ScriptGenerationService - operations that create or grow a script.

Handles:
- Full script generation (manual / auto / blend persona paths)
- Text and visual extension (append-only)
- Hook alternatives, enhancement pass, topic angles and viral titles

Every method compiles an instruction and delegates the model call to the
OperationRunner; nothing here talks to the gateway directly.
"""

import asyncio
import logging
from typing import List, Optional

from ..core.config import Config
from ..core.exceptions import MalformedResponse
from ..personas.registry import PersonaRegistry
from .gemini_gateway import SamplingConfig
from .models import (
    EnhancementLog,
    GeneratorConfig,
    HookOption,
    PartialScript,
    PersonaProfile,
    ScriptDocument,
    ScriptPackage,
    TopicSuggestion,
    ViralTitle,
    WritingMode,
)
from .orchestration import OperationRunner
from .prompt_compiler import (
    AutoIntent,
    BlendIntent,
    GenerationIntent,
    Instruction,
    ManualIntent,
    compile_intent,
    compile_script_request,
)
from .schemas import (
    ENHANCEMENT_LOG,
    HOOK_OPTION_SET,
    PARTIAL_SCRIPT,
    SCRIPT_PACKAGE,
    TITLE_SET,
    TOPIC_SUGGESTION_SET,
)
from .script_document import append_segments, first_audio_snippet, new_document, segments_payload

logger = logging.getLogger(__name__)

# New segments requested per extension call
EXTENSION_SEGMENT_COUNT = 2

HOOK_OPTION_COUNT = 3
TOPIC_SUGGESTION_COUNT = 3
VIRAL_TITLE_COUNT = 10


class ScriptGenerationService:
    """Script creation and growth operations."""

    def __init__(self, registry: PersonaRegistry, runner: OperationRunner):
        """
        Args:
            registry: Persona catalog used to resolve ids and attribution
            runner: Shared operation runner (gateway + retry policy)
        """
        self.registry = registry
        self.runner = runner

    # =========================================================================
    # Script Generation
    # =========================================================================

    def build_intent(
        self,
        config: GeneratorConfig,
        persona: Optional[PersonaProfile] = None,
        override_text: Optional[str] = None,
    ) -> GenerationIntent:
        """
        Map a generator config to a persona path.

        Args:
            config: User request
            persona: Explicit persona; otherwise `selected_style_id`, then the registry default
            override_text: Extra user instruction (manual mode only)

        Raises:
            PersonaNotFound: If a referenced persona id is not in the registry
        """
        if config.writing_mode == WritingMode.AUTO:
            return AutoIntent(candidates=tuple(self.registry.list_personas()))

        if config.writing_mode == WritingMode.BLEND:
            primary_id = config.blend_config.primary_creator_id or config.selected_style_id
            primary = persona or self._persona_or_default(primary_id)
            secondaries = tuple(
                self.registry.get_persona(pid) for pid in config.blend_config.secondary_creator_ids
            )
            return BlendIntent(primary=primary, secondaries=secondaries)

        return ManualIntent(
            persona=persona or self._persona_or_default(config.selected_style_id),
            override_text=override_text,
        )

    async def generate_script(
        self,
        config: GeneratorConfig,
        persona: Optional[PersonaProfile] = None,
        override_text: Optional[str] = None,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> ScriptDocument:
        """
        Generate a complete script document.

        Args:
            config: User request (topic, platform, duration, language, mode, ...)
            persona: Requested persona (manual persona, blend primary, or auto fallback)
            override_text: Extra user instruction for manual mode
            cancel_token: Stops further retry attempts when set

        Returns:
            New ScriptDocument with a fresh id, creation timestamp and resolved attribution

        Raises:
            InvalidIntent: On a malformed blend/auto request (before any network call)
            PersonaNotFound: If a referenced persona id is unknown
        """
        intent = self.build_intent(config, persona, override_text)
        requested = self._requested_persona(intent, config, persona)

        instruction = compile_script_request(
            config,
            compile_intent(intent, topic=config.topic_or_script),
        )

        logger.info(
            f"Generating script: mode={config.writing_mode.value}, persona={requested.id}, "
            f"platform={config.platform}, duration={config.duration}"
        )
        package: ScriptPackage = await self.runner.run_json(
            "generate_script",
            instruction,
            SCRIPT_PACKAGE,
            SamplingConfig(model_key="script", temperature=Config.SCRIPT_TEMPERATURE),
            cancel_token,
        )

        creator = self._resolve_attribution(config.writing_mode, package, requested)
        document = new_document(package, config, creator)
        logger.info(f"Generated script {document.id}: {len(document.segments)} segments by {creator.id}")
        return document

    def _persona_or_default(self, persona_id: str) -> PersonaProfile:
        if persona_id:
            return self.registry.get_persona(persona_id)
        return self.registry.default

    def _requested_persona(
        self,
        intent: GenerationIntent,
        config: GeneratorConfig,
        persona: Optional[PersonaProfile],
    ) -> PersonaProfile:
        if isinstance(intent, ManualIntent):
            return intent.persona
        if isinstance(intent, BlendIntent):
            return intent.primary
        # Auto mode falls back to whatever the user had selected
        return persona or self.registry.find_persona(config.selected_style_id) or self.registry.default

    def _resolve_attribution(
        self,
        mode: WritingMode,
        package: ScriptPackage,
        requested: PersonaProfile,
    ) -> PersonaProfile:
        """Auto mode credits the selected persona when it is known; every other path credits the requested one."""
        if mode != WritingMode.AUTO:
            return requested

        selection = package.auto_creator_selection
        selected_id = selection.selected_id if selection else ""
        selected = self.registry.find_persona(selected_id) if selected_id else None
        if selected is None:
            logger.warning(f"Auto selection returned unknown persona {selected_id!r}; crediting {requested.id}")
            return requested
        return selected

    # =========================================================================
    # Extension
    # =========================================================================

    async def extend_script_text(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> ScriptDocument:
        """
        Append narrative segments continuing the script in the persona's voice.

        Returns:
            New document whose segments start with the original segments, unchanged
        """
        prompt = f"""Continue this script for another 30 seconds matching the style of {persona.name}.
Voice: {persona.bio.voice.tone} | {persona.bio.voice.pacing}
Closing style: {persona.bio.structure.closing_style}
Write {EXTENSION_SEGMENT_COUNT} new segments that carry the narrative forward.

Script so far: {segments_payload(document.segments)}

Return JSON with key 'segments' containing ONLY the new added segments."""

        partial = await self.runner.run_json(
            "extend_script_text",
            Instruction(prompt=prompt),
            PARTIAL_SCRIPT,
            SamplingConfig(model_key="script", temperature=Config.SCRIPT_TEMPERATURE),
            cancel_token,
        )
        return self._append_new_segments("extend_script_text", document, partial)

    async def extend_visual_sequence(
        self,
        document: ScriptDocument,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> ScriptDocument:
        """
        Append B-roll/cinematic segments with minimal narration.

        Returns:
            New document whose segments start with the original segments, unchanged
        """
        prompt = f"""Read the following script segments.
TASK: Generate {EXTENSION_SEGMENT_COUNT} NEW additional segments that purely extend the visual narrative sequence.
Focus on B-Roll, cinematics, or data visualizations that could follow the current ending.
Keep the audio narration minimal or silence/music only.

Current Script: {segments_payload(document.segments)}

Return JSON with key 'segments' containing ONLY the new added segments."""

        partial = await self.runner.run_json(
            "extend_visual_sequence",
            Instruction(prompt=prompt),
            PARTIAL_SCRIPT,
            SamplingConfig(model_key="script"),
            cancel_token,
        )
        return self._append_new_segments("extend_visual_sequence", document, partial)

    @staticmethod
    def _append_new_segments(operation: str, document: ScriptDocument, partial: PartialScript) -> ScriptDocument:
        """Append an extension's segments; an extension that adds nothing is a failed call."""
        if not partial.segments:
            error = MalformedResponse(
                partial.model_dump_json(by_alias=True),
                reason="The AI response contained no new segments",
            )
            error.operation = operation
            logger.error(f"{operation} failed: {error}")
            raise error
        return append_segments(document, partial.segments)

    # =========================================================================
    # Hooks & Enhancement
    # =========================================================================

    async def generate_viral_hooks(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> List[HookOption]:
        """Alternative openers built from the first two segments."""
        prompt = f"""Generate {HOOK_OPTION_COUNT} viral hook options for this script in the voice of {persona.name}.
Hook style: {persona.bio.structure.hook_style}
Use one of each type: Mystery, Controversy, Relatable Story. Score each 0-100.

Script Context: {segments_payload(document.segments[:2])}"""

        result = await self.runner.run_json(
            "generate_viral_hooks",
            Instruction(prompt=prompt),
            HOOK_OPTION_SET,
            SamplingConfig(model_key="script", temperature=Config.SCRIPT_TEMPERATURE),
            cancel_token,
        )
        return result.hooks

    async def enhance_script(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> EnhancementLog:
        """
        Retention/engagement enhancement pass.

        The returned log carries the document's segments at call time in
        `original_segments`, so the caller can roll back.
        """
        prompt = f"""Enhance the following script to maximize retention and engagement.
Keep the voice of {persona.name} ({persona.bio.archetype}).
Report which fields you improved and summarize the changes.

Script: {segments_payload(document.segments)}"""

        log: EnhancementLog = await self.runner.run_json(
            "enhance_script",
            Instruction(prompt=prompt),
            ENHANCEMENT_LOG,
            SamplingConfig(model_key="script"),
            cancel_token,
        )
        return log.model_copy(update={"original_segments": list(document.segments)})

    # =========================================================================
    # Topics & Titles
    # =========================================================================

    async def suggest_topics(
        self,
        topic: str,
        platform: str,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> List[TopicSuggestion]:
        """Refined, search-grounded angles for a raw topic."""
        prompt = f"""User wants to make a video about "{topic}" for {platform}.
Use Google Search to find trending angles and recent news related to this topic.
Suggest {TOPIC_SUGGESTION_COUNT} refined angles likely to go viral.

Respond with JSON only: {{"suggestions": [{{"refinedTopic": "...", "reason": "...", "type": "Angle" | "Clarity" | "Depth"}}]}}"""

        result = await self.runner.run_json(
            "suggest_topics",
            Instruction(prompt=prompt),
            TOPIC_SUGGESTION_SET,
            SamplingConfig(model_key="topics", search_grounding=True),
            cancel_token,
        )
        return result.suggestions

    async def generate_viral_titles(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        language_mode: str,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> List[ViralTitle]:
        """High-CTR title candidates with thumbnail text."""
        snippet = first_audio_snippet(document) or ""
        prompt = f"""Generate {VIRAL_TITLE_COUNT} high-CTR video titles for a video about "{document.topic}".
Creator Style: {persona.name}.
Script Snippet: "{snippet}..."

LANGUAGE REQUIREMENT: {language_mode}
- If 'Hinglish', mix Hindi grammar with strong English keywords.
- If 'Urdu/Hindi', use script or Romanized as appropriate for viral reach.

Optimize for Curiosity Gaps and Negativity Bias."""

        result = await self.runner.run_json(
            "generate_viral_titles",
            Instruction(prompt=prompt),
            TITLE_SET,
            SamplingConfig(model_key="script", temperature=Config.TITLE_TEMPERATURE),
            cancel_token,
        )
        return result.titles
