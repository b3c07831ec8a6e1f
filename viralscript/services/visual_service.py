"""
VisualService - image operations.

- Segment visual previews (index-scoped update of the document)
- Image edits (source image + instruction)
- Persona-styled thumbnails
"""

import asyncio
import logging
from typing import Optional

from ..core.exceptions import InvalidIntent
from ..personas.registry import PersonaRegistry
from .models import GeneratedImage, PersonaProfile, ScriptDocument, ThumbnailStyle
from .orchestration import OperationRunner
from .prompt_compiler import compile_thumbnail_prompt
from .script_document import attach_segment_image, get_segment

logger = logging.getLogger(__name__)


class VisualService:
    """Image generation for previews, edits and thumbnails."""

    def __init__(self, registry: PersonaRegistry, runner: OperationRunner):
        self.registry = registry
        self.runner = runner

    async def generate_visual_preview(
        self,
        document: ScriptDocument,
        index: int,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> ScriptDocument:
        """
        Render a preview of one segment's visual description.

        Callers that show progress set the in-flight flag themselves with
        script_document.mark_generating_image(); the returned document has it
        cleared on the rendered segment.

        Args:
            document: Source document (not modified)
            index: Segment to render

        Returns:
            New document with the image attached at `index`. Only that segment differs.

        Raises:
            InvalidIntent: If `index` is out of range or the segment has no visual description
            ImageGenerationRefused: If the model answered with text only
        """
        visual = get_segment(document, index).visual.strip()
        if not visual:
            raise InvalidIntent(f"Segment {index} has no visual description to render")

        image = await self.runner.run_image(
            "generate_visual_preview",
            lambda: self.runner.gateway.generate_image(visual),
            cancel_token,
        )
        return attach_segment_image(document, index, image.to_data_uri())

    async def edit_generated_image(
        self,
        image: GeneratedImage,
        instruction: str,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> GeneratedImage:
        """
        Edit an image following a natural-language instruction.

        Raises:
            InvalidIntent: If the instruction is empty
            ImageGenerationRefused: If the model answered with text only
        """
        if not instruction or not instruction.strip():
            raise InvalidIntent("Image edit requires a non-empty instruction")

        return await self.runner.run_image(
            "edit_generated_image",
            lambda: self.runner.gateway.edit_image(image, instruction.strip()),
            cancel_token,
        )

    async def edit_segment_image(
        self,
        document: ScriptDocument,
        index: int,
        instruction: str,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> ScriptDocument:
        """Edit the preview attached to one segment and re-attach the result at the same index."""
        current = get_segment(document, index).generated_image_url
        if not current:
            raise InvalidIntent(f"Segment {index} has no generated image to edit")

        edited = await self.edit_generated_image(
            GeneratedImage.from_data_uri(current), instruction, cancel_token
        )
        return attach_segment_image(document, index, edited.to_data_uri())

    async def generate_thumbnail(
        self,
        persona: PersonaProfile,
        topic: str,
        text_overlay: str,
        language_mode: str,
        aspect_ratio: str = "16:9",
        cancel_token: Optional[asyncio.Event] = None,
    ) -> GeneratedImage:
        """
        Thumbnail in the persona's visual style.

        Raises:
            ImageGenerationRefused: If the model answered with text only
        """
        style = self.registry.get_thumbnail_style(persona.id) or ThumbnailStyle()
        prompt = compile_thumbnail_prompt(persona, style, topic, text_overlay, language_mode, aspect_ratio)

        logger.info(f"Generating {aspect_ratio} thumbnail for {persona.id} ({language_mode})")
        return await self.runner.run_image(
            "generate_thumbnail",
            lambda: self.runner.gateway.generate_image(prompt),
            cancel_token,
        )
