"""
ScriptStudioService - facade composing the studio core.

Wires the persona registry, gateway, retry policy and operation services
together, and adds the flows that involve the boundary collaborators:
quota-checked creation with persistence, saving analysis, and applying
canvas edits.

Usage:
    studio = ScriptStudioService.create()
    saved = await studio.create_script(GeneratorConfig(topic_or_script="Why interest rates rise"))
    analysis = await studio.analysis.analyze_script(saved)
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple, Union

import logfire

from ..core.observability import setup_logfire
from ..personas.registry import PersonaRegistry, load_default_registry
from .canvas_history import CanvasHistoryState
from .canvas_service import CanvasService
from .collaborators import InMemoryScriptStore, InMemoryUsageCounter, ScriptStore, UsageCounter
from .gemini_gateway import GeminiGateway
from .models import (
    AnalysisResult,
    GeneratorConfig,
    PersonaProfile,
    SavedScript,
    ScriptDocument,
    UserPlan,
)
from .orchestration import OperationRunner
from .resilience import RetryPolicy
from .script_analysis_service import ScriptAnalysisService
from .script_document import with_user_edit
from .script_generation_service import ScriptGenerationService
from .usage_limit_service import UsageLimitService
from .visual_service import VisualService

logger = logging.getLogger(__name__)


class ScriptStudioService:
    """
    Entry point for embedders.

    Attributes:
        registry: Persona catalog shared by all operations
        generation: Script creation / extension / hooks / topics / titles
        analysis: Read-only enrichments (analysis, simulation, director plan, ...)
        canvas: Flat-text rewrite tools
        visuals: Previews, image edits, thumbnails
        store: Saved-script history collaborator
        usage: Daily quota enforcement
    """

    def __init__(
        self,
        registry: PersonaRegistry,
        gateway: GeminiGateway,
        store: ScriptStore,
        counter: UsageCounter,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry
        self.gateway = gateway
        self.runner = OperationRunner(gateway, policy, sleep)

        self.generation = ScriptGenerationService(registry, self.runner)
        self.analysis = ScriptAnalysisService(self.runner)
        self.canvas = CanvasService(self.runner)
        self.visuals = VisualService(registry, self.runner)

        self.store = store
        self.usage = UsageLimitService(counter)

    @classmethod
    def create(
        cls,
        api_key: Optional[str] = None,
        registry: Optional[PersonaRegistry] = None,
        store: Optional[ScriptStore] = None,
        counter: Optional[UsageCounter] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> "ScriptStudioService":
        """
        Build a studio with default collaborators.

        Args:
            api_key: Gemini API key (default Config.GEMINI_API_KEY); checked per call
            registry: Persona catalog (default: bundled catalog)
            store: History store (default: in-memory)
            counter: Usage counter (default: in-memory, UTC day)
            policy: Retry policy (default from Config)
        """
        setup_logfire()
        registry = registry or load_default_registry()
        logger.info(f"Persona registry ready: {len(registry)} personas")

        gateway = GeminiGateway(api_key=api_key)
        logger.info("GeminiGateway initialized")

        return cls(
            registry=registry,
            gateway=gateway,
            store=store or InMemoryScriptStore(),
            counter=counter or InMemoryUsageCounter(),
            policy=policy,
        )

    # =========================================================================
    # Creation
    # =========================================================================

    async def create_script(
        self,
        config: GeneratorConfig,
        plan: Union[UserPlan, str] = UserPlan.FREE,
        persona: Optional[PersonaProfile] = None,
        override_text: Optional[str] = None,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> SavedScript:
        """
        Quota-checked generation followed by persistence.

        Order: reserve a quota slot (before any network call) -> generate ->
        save -> count usage -> release the slot. A failed generation or save
        is not counted, and concurrent calls cannot exceed the daily quota.

        Raises:
            UsageLimitExceeded: If the plan's daily quota is used up
        """
        with logfire.span("create_script", plan=UserPlan(plan).value, writing_mode=config.writing_mode.value):
            self.usage.reserve(plan)
            try:
                document = await self.generation.generate_script(config, persona, override_text, cancel_token)
                attributed = self.registry.find_persona(document.creator_id) or persona or self.registry.default
                saved = self.store.save(document, attributed)
                count = self.usage.record_usage()
            finally:
                self.usage.release()

            logger.info(f"Saved script {saved.id} (daily usage: {count})")
            return saved

    # =========================================================================
    # Persistence Helpers
    # =========================================================================

    def save_analysis(self, document: ScriptDocument, analysis: AnalysisResult) -> SavedScript:
        """Attach an analysis to the stored record for `document`."""
        persona = self.registry.find_persona(document.creator_id) or self.registry.default
        return self.store.save(document, persona, analysis)

    def save_document(self, document: ScriptDocument) -> SavedScript:
        """
        Store an updated document (extension, canvas edit, preview image).

        Any analysis already stored for it is kept, even though it now
        describes an earlier version; the caller re-runs analysis when wanted.
        """
        persona = self.registry.find_persona(document.creator_id) or self.registry.default
        return self.store.save(document, persona)

    def list_history(self) -> List[SavedScript]:
        return self.store.list()

    def delete_script(self, script_id: str) -> None:
        self.store.delete(script_id)
        logger.info(f"Deleted script {script_id}")

    # =========================================================================
    # Canvas
    # =========================================================================

    def apply_canvas_edit(
        self,
        document: ScriptDocument,
        history: CanvasHistoryState,
        text: str,
    ) -> Tuple[ScriptDocument, CanvasHistoryState]:
        """
        Commit canvas text: push it onto the history and set it as the document's user edit.

        Returns:
            (updated document, updated history)
        """
        new_history = history.push(text)
        return with_user_edit(document, new_history.present), new_history
