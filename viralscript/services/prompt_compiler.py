"""
Prompt Compiler - turns a generation intent into a complete instruction.

Every function here is pure: no I/O, no clock, no randomness. Compiling the
same intent twice yields byte-identical text. Misuse (an empty blend, an
auto-selection with no candidates, a transform missing its parameter) fails
with InvalidIntent before anything reaches the network layer.

Three persona paths feed script generation:
- manual: one persona, locked voice
- auto:   the model picks from a candidate set using SELECTION_RULES
- blend:  one primary persona (structure) plus up to three secondaries (vocabulary)
"""

import enum
import json
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from ..core.config import Config
from ..core.exceptions import InvalidIntent
from .models import GeneratorConfig, PersonaProfile, SummaryLength, ThumbnailStyle

MAX_BLEND_SECONDARIES = 3


# ============================================================================
# Instruction Payload
# ============================================================================

@dataclass(frozen=True)
class Attachment:
    """Inline binary content sent alongside the text prompt."""
    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class Instruction:
    """System instruction + user content for one model invocation."""
    prompt: str = ""
    system_instruction: Optional[str] = None
    attachments: Tuple[Attachment, ...] = ()


# ============================================================================
# Generation Intents
# ============================================================================

@dataclass(frozen=True)
class ManualIntent:
    persona: PersonaProfile
    override_text: Optional[str] = None


@dataclass(frozen=True)
class AutoIntent:
    candidates: Tuple[PersonaProfile, ...]


@dataclass(frozen=True)
class BlendIntent:
    primary: PersonaProfile
    secondaries: Tuple[PersonaProfile, ...] = field(default_factory=tuple)


GenerationIntent = Union[ManualIntent, AutoIntent, BlendIntent]


# ============================================================================
# Static Tables
# ============================================================================

DEFAULT_DURATION = "60 Seconds (Shorts)"

# duration label -> (minimum words, structural guidance)
DURATION_MAPPING: Dict[str, Tuple[int, str]] = {
    "30 Seconds (Fast)": (75, "1 Act: Hook -> Rapid Value -> Punchline"),
    "60 Seconds (Shorts)": (150, "3 Acts: Hook -> The Twist/Insight -> The CTA"),
    "2 Minutes (Explainer)": (320, "Linear: Problem -> Context -> Solution -> Insight"),
    "5 Minutes (Deep Dive)": (
        850,
        "Complex: Hook -> Context/History -> The Deep Analysis (Data) -> The Counter-Point -> Synthesis",
    ),
    "10 Minutes (Mini-Doc)": (
        4000,
        "Documentary: Chapter 1 (The Event) -> Chapter 2 (The Background) -> "
        "Chapter 3 (The Turning Point) -> Chapter 4 (The Aftermath) -> Deep Dive -> Conclusion",
    ),
    "20 Minutes (Full Documentary)": (
        7000,
        "Epic: Multiple Narrative Arcs, Deep Historical Context, Expert Opinions, "
        "Philosophical Conclusion, Extended Case Studies",
    ),
    "Match Original Length": (0, "Mirror input structure"),
}

URDU_PROPER = "Urdu (Proper)"
URDU_ROMAN_SCRIPT = "Urdu (Roman + Script)"


@dataclass(frozen=True)
class SelectionRule:
    """Topic archetype -> preferred persona ids, in priority order."""
    archetype: str
    persona_ids: Tuple[str, ...]


# Checked in order. Kept as data so the auto-selection policy stays inspectable.
SELECTION_RULES: Tuple[SelectionRule, ...] = (
    SelectionRule("Geopolitics / Policy / Debunking", ("dhruvrathee", "thynkwhy")),
    SelectionRule("Human Suffering / Society / Justice", ("nitishrajput",)),
    SelectionRule("Wealth / Business / Systems", ("alexhormozi", "imangadzhi")),
    SelectionRule("Science / Paradox / Physics", ("veritasium",)),
    SelectionRule("Psychology / Meaning / Order", ("jordanpeterson",)),
    SelectionRule("Spectacle / Money Challenges", ("mrbeast",)),
    SelectionRule("Political Satire / Aggression", ("raftar",)),
)


# ============================================================================
# Shared Fragments
# ============================================================================

def truncate_text(text: str, limit: int, marker: str) -> str:
    """Cut text to `limit` characters and append `marker` when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def _enhancement_layers(persona: Optional[PersonaProfile]) -> str:
    if persona is not None:
        style_lock = f"""3. [STYLE AUTHENTICITY LOCK]
    - TARGET PERSONA: {persona.name}
    - ARCHETYPE: {persona.bio.archetype}
    - CORE PHILOSOPHY: {json.dumps(persona.bio.philosophy.core_beliefs, ensure_ascii=False)}
    - TONE & PACING: {persona.bio.voice.tone} | {persona.bio.voice.pacing}
    - VOCABULARY MATRIX: {persona.bio.voice.vocabulary}
    - STRICT CONSTRAINT: Do not drift into "AI neutral" voice. You must embody this persona's worldview and rhythm explicitly."""
    else:
        style_lock = """3. [STYLE AUTHENTICITY LOCK]
    - Strictly adhere to the selected creator's bio, tone, and philosophy.
    - STRICT CONSTRAINT: Do not drift into "AI neutral" voice. You must embody this persona's worldview and rhythm explicitly."""

    return f"""You are operating with 5 active parallel enhancement layers. You must satisfy all of them simultaneously without creating friction.

    1. [SCRIPT QUALITY ANALYZER]
    - ACT AS an invisible editor monitoring logic, flow, and density in real-time.
    - ELIMINATE filler, circular reasoning, and low-value sentences immediately.
    - FORCE every segment to advance the narrative or deepen the argument.

    2. [REAL-TIME CLARITY ENHANCER]
    - DETECT abstract or complex ideas and immediately ground them with concrete examples.
    - ENSURE transitions are invisible and frictionless.
    - NEVER dumb down; clarify upwards.

    {style_lock}

    4. [DYNAMIC HOOK GENERATOR]
    - The first segment MUST be a calculated "Hook" optimized for the target platform.
    - STRATEGY: Use a Pattern Interrupt, High-Stakes Question, or Counter-Intuitive Statement.
    - GOAL: 100% retention in the first 5 seconds.

    5. [DEEP RESEARCH MODE]
    - USE internal knowledge to provide deep context, historical causality, and nuance.
    - SYNTHESIZE disparate facts into cohesive insights.
    - PRIORITIZE "Why" and "How" over simple "What"."""


# ============================================================================
# Persona Paths
# ============================================================================

def compile_manual_instruction(
    persona: PersonaProfile,
    override_text: Optional[str] = None,
) -> Instruction:
    """
    Persona-locked system instruction for manual mode.

    Args:
        persona: The persona whose voice is locked in
        override_text: Optional user instruction layered on top. It can adjust
            the five enhancement layers but is told not to erase them.

    Returns:
        Instruction with only `system_instruction` populated
    """
    system = f"""*** ADVANCED SYSTEM-LEVEL INTELLIGENCE ACTIVE ***

    {_enhancement_layers(persona)}

    [PERSONA STRUCTURE]
    - HOOK STYLE: {persona.bio.structure.hook_style}
    - BODY STRUCTURE: {persona.bio.structure.body_structure}
    - CLOSING STYLE: {persona.bio.structure.closing_style}"""

    if override_text and override_text.strip():
        system += f"""

    [USER OVERRIDE]
    The following user instruction may adjust, but must not remove, layers 1-5 above.
    {override_text.strip()}"""

    return Instruction(system_instruction=system)


def compile_auto_selection_instruction(
    topic: str,
    candidates: Sequence[PersonaProfile],
    char_limit: int = Config.AUTO_SELECTION_CHAR_LIMIT,
) -> Instruction:
    """
    Two-phase selection protocol for auto mode.

    Phase 1 decodes the topic along four axes, phase 2 matches it against
    SELECTION_RULES restricted to the candidate set. The model must report
    its pick in `autoCreatorSelection`. The first candidate is the stated
    default for general educational topics.

    Raises:
        InvalidIntent: If `candidates` is empty
    """
    if not candidates:
        raise InvalidIntent("Auto selection requires at least one candidate persona")

    topic_text = truncate_text(topic, char_limit, "...[TRUNCATED]")
    by_id = {p.id: p for p in candidates}

    profile_lines = "\n".join(
        f"""    - {p.name} (ID: {p.id})
       Tagline: {p.bio.tagline}
       Archetype: {p.bio.archetype}
       Core Beliefs: {", ".join(p.bio.philosophy.core_beliefs[:2])}
       Research Method: {p.bio.research.methodology}"""
        for p in candidates
    )

    rule_lines = []
    for rule in SELECTION_RULES:
        names = [by_id[pid].name for pid in rule.persona_ids if pid in by_id]
        if names:
            rule_lines.append(f"    {len(rule_lines) + 1}. {rule.archetype} -> {' or '.join(names)}.")
    rules_text = "\n".join(rule_lines) or "    (No archetype rules apply to this candidate set; use the default.)"

    default = candidates[0]

    system = f"""*** AUTO MATCH INTELLIGENCE ENGINE ACTIVE ***

    [OBJECTIVE]
    You are an autonomous Creator Intelligence System. Your goal is to select the single best creator persona to write a script about the topic: "{topic_text}".

    [PHASE 1: TOPIC DECODING]
    Analyze the Input Topic for:
    - Factual Intensity (Does it need rigorous citation?)
    - Emotional Resonance (Does it need empathy or anger?)
    - Complexity (Does it need simplification or deep philosophy?)
    - Narrative Shape (Is it a story, a roast, or a lecture?)

    [PHASE 2: PROFILE MATCHING]
    Compare the topic against these profiles:

{profile_lines}

    [SELECTION WEIGHTING RULES]
{rules_text}

    [CONSTRAINTS]
    - DEFAULT: {default.name} is the default for general educational topics, but ONLY if they rely on logic/data.
    - NO RANDOMNESS: Do not rotate creators for variety. The same kind of topic must always get the same kind of creator. Choose the absolute best fit.
    - STRICT ISOLATION: Once a creator is chosen, ignore all others. Do not blend.

    [OUTPUT REQUIREMENT]
    You must populate the 'autoCreatorSelection' field in the JSON response:
    - selectedId: The ID of the chosen creator.
    - reason: A public-facing disclosure sentence (e.g., "Chosen for this topic due to its focus on [X] which aligns with [Creator]'s analytical style.").
    - alternatives: List 1-2 runner-up IDs.

    [EXECUTION PHASE]
    After selection, proceed to write the script in the selected creator's voice.

    {_enhancement_layers(None)}

    Write the full script package now."""

    return Instruction(system_instruction=system)


def compile_blend_instruction(
    primary: PersonaProfile,
    secondaries: Sequence[PersonaProfile],
) -> Instruction:
    """
    Asymmetric blend: primary supplies structure, secondaries season vocabulary.

    Raises:
        InvalidIntent: If there are no secondaries, more than
            MAX_BLEND_SECONDARIES, duplicates, or the primary is repeated
    """
    if not secondaries:
        raise InvalidIntent("Blend requires at least one secondary persona")
    if len(secondaries) > MAX_BLEND_SECONDARIES:
        raise InvalidIntent(
            f"Blend allows at most {MAX_BLEND_SECONDARIES} secondary personas, got {len(secondaries)}"
        )
    secondary_ids = [p.id for p in secondaries]
    if len(set(secondary_ids)) != len(secondary_ids):
        raise InvalidIntent("Blend secondary personas must be distinct")
    if primary.id in secondary_ids:
        raise InvalidIntent(f"Primary persona {primary.id} cannot also be a secondary")

    secondary_contexts = "\n".join(
        f"""       [SECONDARY INFLUENCE: {p.name}]
       - Contribution: Inject their {p.bio.voice.tone} tone and {p.bio.voice.vocabulary} vocabulary.
       - Constraint: Do NOT override the primary narrative structure. Use as 'spice', not 'base'."""
        for p in secondaries
    )
    secondary_names = ", ".join(p.name for p in secondaries)

    system = f"""*** CREATOR BLEND STUDIO ACTIVE ***

    [CONFIGURATION]
    PRIMARY VOICE: {primary.name} ({primary.bio.archetype})
    SECONDARY LAYERS: {secondary_names}

    [BLENDING ARCHITECTURE]

    1. THE BACKBONE (70% Influence - {primary.name})
       - The script structure, hook style, and logical flow MUST follow {primary.name}.
       - Hook style: {primary.bio.structure.hook_style}
       - Use {primary.name}'s closing style: {primary.bio.structure.closing_style}

    2. THE INFUSION (30% Influence - Secondary Creators)
{secondary_contexts}

    3. CONFLICT RESOLUTION
       - When the primary and a secondary have opposing emotional registers (e.g. Primary is 'Calm' and Secondary is 'Hype'), keep {primary.name}'s pacing ({primary.bio.voice.pacing}) and use the secondary's vocabulary at emotional peaks only.
       - Do not allow contradictory ideologies to break the narrative flow.
       - URDU/HINDI PURITY: If the output language is Urdu/Hindi, ensure the blending does not result in broken 'Hinglish' unless the Primary Creator's style explicitly allows it.

    [OUTPUT REQUIREMENT]
    You must populate the 'blendMetadata' field in the JSON response:
    - primaryCreator: Name of primary.
    - secondaryCreators: List of names.
    - blendRatio: Description of how the styles were mixed (e.g., "{primary.name}'s structure with {secondaries[0].name}'s vocabulary").

    [INTELLIGENCE LAYERS]
    {_enhancement_layers(primary)}

    Proceed to write the blended script now."""

    return Instruction(system_instruction=system)


def compile_intent(intent: GenerationIntent, topic: str = "") -> Instruction:
    """Dispatch a generation intent to its persona path. `topic` is used by auto mode only."""
    if isinstance(intent, ManualIntent):
        return compile_manual_instruction(intent.persona, intent.override_text)
    if isinstance(intent, BlendIntent):
        return compile_blend_instruction(intent.primary, intent.secondaries)
    if isinstance(intent, AutoIntent):
        return compile_auto_selection_instruction(topic, intent.candidates)
    raise InvalidIntent(f"Unknown generation intent: {type(intent).__name__}")


# ============================================================================
# Script Request
# ============================================================================

def language_instruction(language: str, dialect: Optional[str] = None) -> str:
    """Language line for the script request."""
    if language == URDU_PROPER:
        return "LANGUAGE: Pure Urdu (Nastaliq Script). Do NOT use English/Roman characters."
    if language == URDU_ROMAN_SCRIPT:
        return (
            "LANGUAGE: Roman Urdu (English alphabet) FOLLOWED BY the actual Urdu Script "
            "in brackets [ ] for each sentence. Example: 'Main ja raha hoon [میں جا رہا ہوں]'."
        )
    if dialect:
        return f"LANGUAGE: {language} (Dialect: {dialect})"
    return f"LANGUAGE: {language}"


def duration_guidance(duration: str) -> Tuple[int, str]:
    """(minimum words, structure) for a duration label; unknown labels use the Shorts default."""
    return DURATION_MAPPING.get(duration, DURATION_MAPPING[DEFAULT_DURATION])


def compile_script_request(
    config: GeneratorConfig,
    persona_instruction: Instruction,
    char_limit: int = Config.TOPIC_CHAR_LIMIT,
) -> Instruction:
    """
    Combine a persona-path system instruction with the user's request.

    Reference images become attachments and the model is told to fold their
    details into the segment visuals.
    """
    topic = truncate_text(config.topic_or_script, char_limit, "...[TRUNCATED FOR LENGTH]")
    min_words, structure = duration_guidance(config.duration)

    lines = [
        f"TOPIC: {topic}",
        f"PLATFORM: {config.platform}",
        f"DURATION: {config.duration} (~{min_words} words)",
        language_instruction(config.language, config.arabic_dialect),
        f"STRUCTURE: {structure}",
    ]
    sponsor = config.sponsor_info
    if sponsor is not None and sponsor.enabled:
        lines.append(f"SPONSOR: {sponsor.name} ({sponsor.product}) - {sponsor.message}")

    task = "Write a complete script package JSON."
    if config.reference_images:
        task += (
            " Reference images are attached: analyze them and incorporate their details"
            " into the script visual descriptions."
        )
    lines.extend(["", "[TASK]", task])

    attachments = tuple(
        Attachment(data=image.to_bytes(), mime_type=image.mime_type)
        for image in config.reference_images
    )
    return replace(persona_instruction, prompt="\n".join(lines), attachments=attachments)


# ============================================================================
# Canvas Transforms
# ============================================================================

class TransformKind(str, enum.Enum):
    TONE_CHANGE = "tone_change"
    STYLE_CHANGE = "style_change"
    SUMMARIZE = "summarize"
    ADD_REFLECTIVE_QUESTIONS = "add_reflective_questions"
    GRAMMAR_FIX = "grammar_fix"


SUMMARY_LENGTH_RULES = {
    SummaryLength.SHORT: "Condense to the absolute core hook and conclusion. Max 150 words.",
    SummaryLength.MEDIUM: "Retain main arguments but remove examples and fluff. Approx 50% of original.",
    SummaryLength.DETAILED: "Keep all distinct points but tighten phrasing. Approx 80% of original.",
}


def _require(params: Mapping[str, Any], key: str, kind: TransformKind) -> Any:
    value = params.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidIntent(f"{kind.value} requires parameter '{key}'")
    return value


def _input_block(text: str) -> str:
    return f'INPUT SCRIPT:\n"""\n{text}\n"""'


def compile_transform(
    kind: TransformKind,
    source_text: str,
    params: Optional[Mapping[str, Any]] = None,
) -> Instruction:
    """
    Flat-text rewrite instruction.

    Args:
        kind: Which transform to compile
        source_text: Current canvas text
        params: `target_tone` (TONE_CHANGE), `target_persona` (STYLE_CHANGE),
            `target_length` (SUMMARIZE), `voice_name` (GRAMMAR_FIX)

    Raises:
        InvalidIntent: If the source text is empty or a required parameter is missing
    """
    params = params or {}
    if not source_text or not source_text.strip():
        raise InvalidIntent(f"{kind.value} requires non-empty source text")

    if kind == TransformKind.TONE_CHANGE:
        tone = _require(params, "target_tone", kind)
        prompt = f"""ROLE: Master Script Editor.
TASK: Rewrite the following script to have a "{tone}" tone.

[ALGORITHMIC RULES]
1. ANALYZE the current emotional weight and rhythm.
2. TRANSFORM the vocabulary and sentence structure to match "{tone}".
3. CONSTRAINT: You MUST preserve the original paragraph structure, paragraph count, argument order, and factual details. Do not summarize. Do not add new facts.
4. GOAL: The output must feel like the exact same script, just spoken by someone with a different emotional intent.

{_input_block(source_text)}

OUTPUT:
Return ONLY the rewritten script text. No meta-commentary."""

    elif kind == TransformKind.STYLE_CHANGE:
        persona = _require(params, "target_persona", kind)
        phrases = '", "'.join(persona.bio.voice.signature_phrases)
        phrase_rule = (
            f'3. INTEGRATE their signature phrases naturally if appropriate (e.g., "{phrases}").'
            if phrases else
            "3. USE their metaphors, sentence length, and rhetorical devices."
        )
        prompt = f"""ROLE: Ghostwriter for {persona.name}.
TASK: Rewrite the provided script to match the specific stylistic framework of {persona.name}.

[CREATOR PROFILE]
- Archetype: {persona.bio.archetype}
- Tone: {persona.bio.voice.tone}
- Vocabulary: {persona.bio.voice.vocabulary}
- Structural Signature: {persona.bio.structure.body_structure}

[EXECUTION RULES]
1. ABSORB the input script's topic and key arguments.
2. REWRITE it as if {persona.name} is speaking it, keeping the paragraph order and argument order.
{phrase_rule}
4. PRESERVE the core truth. Do not invent new facts or data points, but you may reframe existing ones through their lens.

{_input_block(source_text)}

OUTPUT:
Return ONLY the rewritten script text."""

    elif kind == TransformKind.SUMMARIZE:
        try:
            length = SummaryLength(_require(params, "target_length", kind))
        except ValueError:
            raise InvalidIntent(f"Unknown summary length: {params.get('target_length')}")
        prompt = f"""ROLE: Executive Script Editor.
TASK: Condense the script based on the following constraint: {SUMMARY_LENGTH_RULES[length]}

[LOGIC]
1. IDENTIFY the narrative arc (Beginning -> Middle -> End) and keep it in order.
2. STRIP away repetition, filler words, and secondary elaborations.
3. PRESERVE narrative continuity and factual content. Do not add new facts. The output must be a coherent, read-aloud script, NOT a bulleted list.
4. TONE: Keep the original intent, just sharper.

{_input_block(source_text)}

OUTPUT:
Return ONLY the condensed script text."""

    elif kind == TransformKind.ADD_REFLECTIVE_QUESTIONS:
        prompt = f"""ROLE: Socratic Engagement Engine.
TASK: Deepen the following script by appending or weaving in 3-4 profound, relevant questions.

[BEHAVIOR]
1. ANALYZE the script's central theme and conclusion.
2. GENERATE questions that:
   - Challenge the viewer's assumptions.
   - Encourage self-reflection.
   - Open a "loop" for future thought.
3. INTEGRATION: Add these questions as a new "Reflection" section at the end, or woven into the conclusion if it fits seamlessly.
4. ADDITIVE ONLY: Do NOT alter the existing text. Only ADD to it.

{_input_block(source_text)}

OUTPUT:
Return the full script with the new questions integrated."""

    elif kind == TransformKind.GRAMMAR_FIX:
        voice_name = _require(params, "voice_name", kind)
        prompt = f"""Correct grammar/spelling. Preserve {voice_name}'s voice.
Do not change word choice, rhythm, or structure beyond what the corrections require.

{_input_block(source_text)}

OUTPUT:
Return ONLY the corrected script text."""

    else:
        raise InvalidIntent(f"Unknown transform: {kind}")

    return Instruction(prompt=prompt)


# ============================================================================
# Thumbnails
# ============================================================================

def _is_urdu_or_hindi(language_mode: str) -> bool:
    mode = language_mode.lower()
    return mode.startswith("urdu") or "hindi" in mode


def compile_thumbnail_prompt(
    persona: PersonaProfile,
    style: ThumbnailStyle,
    topic: str,
    text_overlay: str,
    language_mode: str,
    aspect_ratio: str = "16:9",
) -> str:
    """
    Engineered image prompt for a persona-styled thumbnail.

    Args:
        persona: Creator whose thumbnail aesthetic is applied
        style: The persona's thumbnail directive (see PersonaRegistry.get_thumbnail_style)
        topic: Video topic, injected as subject matter
        text_overlay: Text rendered on the thumbnail
        language_mode: Drives the font rule (Nastaliq/Devanagari for Urdu/Hindi)
        aspect_ratio: Output aspect ratio
    """
    if _is_urdu_or_hindi(language_mode):
        font_rule = (
            "Render the text overlay in a bold, calligraphic Nastaliq-style font or "
            "Devanagari script. Ensure cultural authenticity."
        )
    elif "nitish" in persona.id:
        font_rule = "Render text in a cinematic Serif font (like Cinzel)."
    else:
        font_rule = "Render text in a bold, impactful Sans-Serif font (like Impact or Montserrat)."

    return f"""Create a professional YouTube thumbnail.

[STYLE DNA]
Creator Style: {persona.name}
Aesthetic: {style.prompt_structure}
Color Palette: {style.dominant_colors}
Composition: {style.composition}
Mandatory Elements: {", ".join(style.elements)}.

[SUBJECT MATTER]
Core Topic: {topic}
Include imagery related to: "{topic}" (e.g., if economic, show graphs/currency; if tech, show circuits/devices).
Integrate these visual metaphors into the creator's typical composition (e.g. inside the magnifier or background).

[TEXT OVERLAY]
Text: "{text_overlay}"
Font Rule: {font_rule}
Text Visibility: Large, legible, high contrast against background.

[TECHNICAL]
Aspect Ratio: {aspect_ratio}
Quality: 8k, Unreal Engine 5 render style, sharp focus, no blur."""
