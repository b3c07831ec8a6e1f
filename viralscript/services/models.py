"""
Pydantic models for the ViralScript studio.

These models provide type-safe, validated data structures for:
- Creator personas (PersonaProfile and its bio sections)
- Script documents and their segments/citations (ScriptDocument)
- Read-only enrichment artifacts (AnalysisResult, SimulationResult, DirectorPlan, ...)
- Generation inputs (GeneratorConfig)

Field names are snake_case in Python and camelCase on the wire (the shape the
model is instructed to emit). Both spellings are accepted on input.
"""

import base64
import enum
import typing
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# Enums
# ============================================================================

class WritingMode(str, enum.Enum):
    """Which prompt compiler path a script generation runs."""
    MANUAL = "manual"
    AUTO = "auto"
    BLEND = "blend"


class CitationType(str, enum.Enum):
    """Source category of a citation."""
    NEWS = "News"
    RESEARCH = "Research"
    REPORT = "Report"
    PUBLIC_DATA = "Public Data"
    OFFICIAL = "Official"


class Reliability(str, enum.Enum):
    """Reliability grade of a citation source."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ViralityLabel(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    VIRAL = "Viral"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HookType(str, enum.Enum):
    MYSTERY = "Mystery"
    CONTROVERSY = "Controversy"
    RELATABLE_STORY = "Relatable Story"


class TitlePattern(str, enum.Enum):
    EXPLANATION = "Explanation"
    INVESTIGATION = "Investigation"
    CURIOSITY = "Curiosity"
    SHOCK = "Shock"
    LIST = "List"


class TopicSuggestionType(str, enum.Enum):
    ANGLE = "Angle"
    CLARITY = "Clarity"
    DEPTH = "Depth"


class ExperimentType(str, enum.Enum):
    HOOK_AB = "Hook A/B"
    TONE_SHIFT = "Tone Shift"
    LENGTH = "Length"


class SummaryLength(str, enum.Enum):
    """Target length for the canvas summarize transform."""
    SHORT = "Short"
    MEDIUM = "Medium"
    DETAILED = "Detailed"


class UserPlan(str, enum.Enum):
    FREE = "free"
    PRO = "pro"


# ============================================================================
# Base Model
# ============================================================================

def _unwrap_optional(annotation):
    """Return the inner type of Optional[X], or the annotation unchanged."""
    if typing.get_origin(annotation) is typing.Union:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _normalize_token(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch.isalnum())


class StudioModel(BaseModel):
    """
    Shared base for every studio model.

    Applies the post-parse normalization once for all models:
    - list fields that arrive as null become empty lists
    - other non-optional fields that arrive as null take their default
    - enum fields match case- and spacing-insensitively
      (e.g. "PublicData" -> CitationType.PUBLIC_DATA, "high" -> Reliability.HIGH)
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    @field_validator('*', mode='before')
    @classmethod
    def normalize_wire_value(cls, v, info):
        """Convert None to empty list for list fields and coerce loose enum spellings"""
        field = cls.model_fields.get(info.field_name)
        if field is None:
            return v
        annotation = _unwrap_optional(field.annotation)

        if v is None:
            if typing.get_origin(annotation) in (list, List):
                return []
            # Explicit null on a non-optional field with a default means "absent"
            if annotation is field.annotation and not field.is_required():
                return field.get_default(call_default_factory=True)
            return v

        if isinstance(v, str) and isinstance(annotation, type) and issubclass(annotation, enum.Enum):
            wanted = _normalize_token(v)
            for member in annotation:
                if _normalize_token(member.value) == wanted:
                    return member
        return v

    def to_wire(self) -> dict:
        """Serialize using camelCase wire names."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def _clamp_score(v):
    """Clamp a 0-100 score; the model occasionally overshoots."""
    if v is None:
        return 0.0
    return max(0.0, min(100.0, float(v)))


# ============================================================================
# Persona Models
# ============================================================================

class PersonaPhilosophy(StudioModel):
    core_beliefs: List[str] = Field(default_factory=list, description="Ordered core beliefs")
    content_goal: str = Field("", description="What the creator's content tries to achieve")


class PersonaVoice(StudioModel):
    tone: str = ""
    pacing: str = ""
    emotional_range: str = ""
    vocabulary: str = ""
    signature_phrases: List[str] = Field(default_factory=list)


class PersonaStructure(StudioModel):
    hook_style: str = ""
    body_structure: str = ""
    closing_style: str = ""


class PersonaResearch(StudioModel):
    methodology: str = ""
    bias: str = ""
    preferred_sources: List[str] = Field(default_factory=list)


class PersonaBio(StudioModel):
    """Deep profile used by the prompt compiler."""
    archetype: str = Field(..., description="One-line archetype (e.g., 'The Academic Explainer')")
    tagline: str = Field("", description="Short style label shown in pickers")
    philosophy: PersonaPhilosophy = Field(default_factory=PersonaPhilosophy)
    voice: PersonaVoice = Field(default_factory=PersonaVoice)
    structure: PersonaStructure = Field(default_factory=PersonaStructure)
    research: PersonaResearch = Field(default_factory=PersonaResearch)


class PersonaProfile(StudioModel):
    """
    A creator persona. Immutable once loaded.
    """
    id: str = Field(..., description="Stable id: lowercased name without spaces")
    name: str = Field(..., description="Display name")
    handle: str = Field("", description="Social handle")
    hex: str = Field("#71717a", description="Brand color for presentation")
    avatar_url: Optional[str] = Field(None, description="Avatar image reference")
    bio: PersonaBio

    model_config = {"frozen": True}

    @property
    def style(self) -> str:
        """Tagline, used as the creator style label on saved scripts."""
        return self.bio.tagline


class ThumbnailStyle(StudioModel):
    """Per-persona thumbnail directive."""
    visual_dna: str = ""
    prompt_structure: str = ""
    dominant_colors: str = ""
    composition: str = ""
    elements: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}


# ============================================================================
# Script Document Models
# ============================================================================

class Segment(StudioModel):
    """One visual+audio beat of a script."""
    visual: str = Field("", description="Visual/B-roll description")
    audio: str = Field("", description="Narration text")
    is_weak: Optional[bool] = Field(None, description="Flagged as a retention weak point")
    rewrite_suggestion: Optional[str] = Field(None, description="Suggested rewrite for weak segments")
    generated_image_url: Optional[str] = Field(None, description="data: URI of a generated preview")
    is_generating_image: bool = Field(False, description="Preview generation in flight")


class Citation(StudioModel):
    id: Optional[str] = None
    type: Optional[CitationType] = Field(None, description="Source category")
    source_name: str = ""
    context: str = Field("", description="Quoted justification for the claim")
    url: Optional[str] = None
    reliability_score: Optional[Reliability] = None
    is_verified: Optional[bool] = None


class AutoCreatorSelection(StudioModel):
    selected_id: str = ""
    reason: str = Field("", description="User-facing one-sentence justification")
    alternatives: List[str] = Field(default_factory=list, description="Up to two runner-up ids")


class BlendMetadata(StudioModel):
    primary_creator: str = ""
    secondary_creators: List[str] = Field(default_factory=list)
    blend_ratio: str = Field("", description="Human-readable description of the mix")


class ScriptPackage(StudioModel):
    """Shape the model emits for a full script generation."""
    title: str = ""
    detected_intent: str = ""
    target_audience: str = ""
    segments: List[Segment] = Field(default_factory=list)
    ctas: List[str] = Field(default_factory=list)
    citations: List[Citation] = Field(default_factory=list)
    auto_creator_selection: Optional[AutoCreatorSelection] = None
    blend_metadata: Optional[BlendMetadata] = None


class PartialScript(StudioModel):
    """Segments-only shape used by the extension operations."""
    segments: List[Segment] = Field(default_factory=list)


class ScriptDocument(ScriptPackage):
    """
    The central script aggregate.

    Treated as a value: operations return a new document (model_copy) rather
    than mutating the one they were given. ``segments`` is never None.
    ``user_edited_text`` takes precedence for display/export, while
    ``segments`` stays the source of truth for segment-level operations.
    """
    id: Optional[str] = Field(None, description="Document id, assigned at generation")
    topic: str = ""
    platform_type: str = ""
    duration: str = ""
    language: Optional[str] = None
    creator_id: str = Field("", description="Resolved persona id (provenance)")
    creator_name: str = Field("", description="Resolved persona name (provenance)")
    creator_style: str = ""
    user_edited_text: Optional[str] = Field(None, description="Flat-text override from canvas edits")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_edited_at: Optional[datetime] = None


# ============================================================================
# Enrichment Artifact Models
# ============================================================================

class RetentionPoint(StudioModel):
    time: str = Field("", description="Time label (e.g., '0:15')")
    retention: float = Field(0.0, description="Retention percentage at that time")


class SafetyFlag(StudioModel):
    severity: Severity = Severity.LOW
    reason: str = ""


class AnalysisResult(StudioModel):
    """
    Virality and integrity analysis of a document snapshot.

    Not invalidated when the source document is edited afterwards.
    """
    hook_score: float = Field(0.0, description="Hook strength 0-100")
    virality_label: ViralityLabel = ViralityLabel.LOW
    retention_data: List[RetentionPoint] = Field(default_factory=list, description="Retention curve")
    suggestions: List[str] = Field(default_factory=list)
    drop_off_prediction: Optional[str] = None
    truth_score: float = Field(0.0, description="Factual integrity 0-100")
    monetization_risks: List[str] = Field(default_factory=list)
    safety_flags: List[SafetyFlag] = Field(default_factory=list)

    @field_validator('hook_score', 'truth_score', mode='after')
    @classmethod
    def clamp_scores(cls, v):
        return _clamp_score(v)

    @classmethod
    def neutral(cls) -> "AnalysisResult":
        """Zero-valued result for a document with nothing to analyze."""
        return cls(
            hook_score=0.0,
            virality_label=ViralityLabel.LOW,
            truth_score=0.0,
            suggestions=["Add at least one segment before running analysis."],
        )


class HookOption(StudioModel):
    id: str = ""
    type: Optional[HookType] = None
    visual: str = ""
    audio: str = ""
    score: float = 0.0
    reasoning: str = ""


class HookOptionSet(StudioModel):
    hooks: List[HookOption] = Field(default_factory=list)


class RetentionHeatPoint(StudioModel):
    second: float = 0.0
    score: float = 0.0
    comment: Optional[str] = None


class AudiencePersona(StudioModel):
    id: str = ""
    demographic: str = ""
    reaction: str = ""
    drop_point_time: str = ""
    emotional_trigger: str = ""


class MicroFix(StudioModel):
    original: str = ""
    fix: str = ""
    impact: str = ""


class SimulationResult(StudioModel):
    retention_heatmap: List[RetentionHeatPoint] = Field(default_factory=list)
    personas: List[AudiencePersona] = Field(default_factory=list)
    micro_fixes: List[MicroFix] = Field(default_factory=list)
    predicted_retention: float = 0.0


class ProductionScene(StudioModel):
    id: str = ""
    time_start: str = ""
    duration: str = ""
    camera_direction: str = Field("", description="Closeup, Wide, Montage, ...")
    audio_cue: str = Field("", description="Music mood, SFX")
    visual_prompt: str = ""
    on_screen_text: str = ""


class ThumbnailConcept(StudioModel):
    description: str = ""
    text_overlay: str = ""
    score: float = 0.0


class DirectorPlan(StudioModel):
    scenes: List[ProductionScene] = Field(default_factory=list)
    thumbnails: List[ThumbnailConcept] = Field(default_factory=list)
    editing_notes: str = ""
    music_mood: str = ""


class CitationSet(StudioModel):
    citations: List[Citation] = Field(default_factory=list)


class ExperimentVariant(StudioModel):
    id: str = ""
    type: Optional[ExperimentType] = None
    predicted_winner: bool = False
    confidence: float = 0.0
    reason: str = ""


class ExperimentVariantSet(StudioModel):
    variants: List[ExperimentVariant] = Field(default_factory=list)


class ViralTitle(StudioModel):
    text: str = ""
    ctr_score: float = 0.0
    pattern: Optional[TitlePattern] = None
    thumbnail_text: str = ""
    reasoning: str = ""


class TitleSet(StudioModel):
    titles: List[ViralTitle] = Field(default_factory=list)


class TopicSuggestion(StudioModel):
    refined_topic: str = ""
    reason: str = ""
    type: Optional[TopicSuggestionType] = None


class TopicSuggestionSet(StudioModel):
    suggestions: List[TopicSuggestion] = Field(default_factory=list)


class EnhancementLog(StudioModel):
    improved_fields: List[str] = Field(default_factory=list)
    summary: str = ""
    original_segments: List[Segment] = Field(default_factory=list, description="Segments before enhancement, for rollback")


# ============================================================================
# Generation Input Models
# ============================================================================

class SponsorInfo(StudioModel):
    enabled: bool = False
    name: str = ""
    product: str = ""
    message: str = ""


class BlendConfig(StudioModel):
    primary_creator_id: str = ""
    secondary_creator_ids: List[str] = Field(default_factory=list)


class ReferenceImage(StudioModel):
    """Image attached to a generation request as inline multimodal content."""
    id: Optional[str] = None
    data: str = Field(..., description="Base64-encoded image bytes")
    mime_type: str = "image/png"

    def to_bytes(self) -> bytes:
        payload = self.data.split(",", 1)[1] if self.data.startswith("data:") else self.data
        return base64.b64decode(payload)


class GeneratorConfig(StudioModel):
    """User request for a new script."""
    topic_or_script: str = Field(..., description="Topic, or an existing script to rework")
    platform: str = "YouTube Shorts"
    duration: str = "60 Seconds (Shorts)"
    language: str = "English"
    arabic_dialect: Optional[str] = None
    writing_mode: WritingMode = WritingMode.MANUAL
    selected_style_id: str = Field("", description="Manual persona, or the blend primary")
    blend_config: BlendConfig = Field(default_factory=BlendConfig)
    sponsor_info: Optional[SponsorInfo] = None
    reference_images: List[ReferenceImage] = Field(default_factory=list)


# ============================================================================
# Image & Persistence Models
# ============================================================================

class GeneratedImage(StudioModel):
    """Binary image returned by the image model."""
    data: bytes
    mime_type: str = "image/png"

    def to_data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_uri(cls, uri: str) -> "GeneratedImage":
        """Parse a data: URI (or bare base64, assumed PNG)."""
        if uri.startswith("data:") and "," in uri:
            header, payload = uri.split(",", 1)
            mime_type = header[len("data:"):].split(";")[0] or "image/png"
        else:
            payload, mime_type = uri, "image/png"
        return cls(data=base64.b64decode(payload), mime_type=mime_type)


class SavedScript(ScriptDocument):
    """A persisted document, optionally with the analysis run against it."""
    analysis: Optional[AnalysisResult] = None
