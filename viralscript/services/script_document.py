"""
Script Document operations.

A ScriptDocument is treated as a value: every function here returns a new
document and leaves its argument untouched. Segment-level image updates are
index-scoped so two previews running against the same document can be merged
by index instead of replacing the whole segment list.
"""

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..core.exceptions import InvalidIntent
from .models import (
    GeneratorConfig,
    PersonaProfile,
    ScriptDocument,
    ScriptPackage,
    Segment,
)

logger = logging.getLogger(__name__)

# Fields sent to the model when a document's segments are quoted in a prompt
_PROMPT_SEGMENT_FIELDS = {"visual", "audio", "is_weak", "rewrite_suggestion"}


def new_document(
    package: ScriptPackage,
    config: GeneratorConfig,
    creator: PersonaProfile,
) -> ScriptDocument:
    """
    Build a fresh document from a validated script package.

    Assigns a new id and creation timestamp; attribution comes from `creator`
    (the resolved persona, which in auto mode may differ from the requested one).
    """
    return ScriptDocument(
        **package.model_dump(),
        id=str(uuid.uuid4()),
        topic=config.topic_or_script,
        platform_type=config.platform,
        duration=config.duration,
        language=config.language,
        creator_id=creator.id,
        creator_name=creator.name,
        creator_style=creator.style,
        created_at=datetime.now(timezone.utc),
    )


def append_segments(document: ScriptDocument, new_segments: Sequence[Segment]) -> ScriptDocument:
    """Return a copy with `new_segments` appended. Existing segments are never replaced."""
    segments = list(document.segments) + list(new_segments)
    return document.model_copy(update={"segments": segments})


def get_segment(document: ScriptDocument, index: int) -> Segment:
    """
    Segment at `index`.

    Raises:
        InvalidIntent: If `index` is out of range
    """
    if index < 0 or index >= len(document.segments):
        raise InvalidIntent(
            f"Segment index {index} out of range for document with {len(document.segments)} segment(s)"
        )
    return document.segments[index]


def _replace_segment(document: ScriptDocument, index: int, **changes) -> ScriptDocument:
    segment = get_segment(document, index)
    segments = list(document.segments)
    segments[index] = segment.model_copy(update=changes)
    return document.model_copy(update={"segments": segments})


def mark_generating_image(document: ScriptDocument, index: int, generating: bool = True) -> ScriptDocument:
    """Set the in-flight image flag on one segment."""
    return _replace_segment(document, index, is_generating_image=generating)


def attach_segment_image(document: ScriptDocument, index: int, image_url: str) -> ScriptDocument:
    """Attach a generated preview to one segment and clear its in-flight flag."""
    return _replace_segment(
        document,
        index,
        generated_image_url=image_url,
        is_generating_image=False,
    )


def with_user_edit(document: ScriptDocument, text: str) -> ScriptDocument:
    """
    Return a copy carrying a flat-text override.

    Segments are left as they are; they stay the source for segment-level
    operations. Any analysis the caller holds for this document is not touched.
    """
    return document.model_copy(
        update={
            "user_edited_text": text,
            "last_edited_at": datetime.now(timezone.utc),
        }
    )


def segments_to_text(segments: Sequence[Segment]) -> str:
    """Flat canvas representation of a segment list."""
    return "\n".join(f"[VISUAL] {s.visual}\n(AUDIO) {s.audio}\n" for s in segments)


def to_flat_text(document: ScriptDocument) -> str:
    """Display/export text: the user's edit when present, else the rendered segments."""
    if document.user_edited_text is not None:
        return document.user_edited_text
    return segments_to_text(document.segments)


def segments_payload(segments: Sequence[Segment]) -> str:
    """
    JSON rendering of segments for inclusion in a prompt.

    Generated image data is excluded; a data URI per segment would dominate
    the prompt.
    """
    items: List[dict] = [
        s.model_dump(by_alias=True, include=_PROMPT_SEGMENT_FIELDS, exclude_none=True)
        for s in segments
    ]
    return json.dumps(items, ensure_ascii=False)


def first_audio_snippet(document: ScriptDocument, length: int = 100) -> Optional[str]:
    """First `length` characters of the opening narration, if any."""
    if not document.segments:
        return None
    return document.segments[0].audio[:length]
