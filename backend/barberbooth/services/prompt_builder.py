from __future__ import annotations
"""Request building: turns GenerationInputs into ordered request parts and video descriptions."""

import logging

from barberbooth.prompts import PromptManager
from barberbooth.schemas.generation import GenerationInputs
from barberbooth.schemas.parts import ImagePart, TextPart
from barberbooth.services.errors import InvalidInputError
from barberbooth.services.sheet_codec import resize_for_api

logger = logging.getLogger(__name__)


def build_hairstyle_instructions(inputs: GenerationInputs, reference_key: str | None) -> str:
    """Hairstyle block of the four-up prompt.

    ``reference_key`` names the asset holding the reference image, if any.
    """
    if reference_key:
        instructions = f"Apply the hairstyle from {reference_key}."
        if inputs.description:
            instructions += f' Description: "{inputs.description}".'
        if inputs.modification:
            instructions += f' Modification: "{inputs.modification}".'
    elif inputs.description:
        instructions = f'The hairstyle should be: "{inputs.description}".'
    elif inputs.color:
        return (
            f"Dye the person's current hair to this exact color: {inputs.color}.\n"
            "- The hairstyle, length, and texture MUST NOT be changed. Only the color changes."
        )
    else:
        raise InvalidInputError(
            "Either a hairstyle description, a reference image, "
            "or just a hair color must be provided."
        )

    if inputs.color:
        instructions += f"\n- The final hair color MUST be exactly this hex code: {inputs.color}."
    return instructions


def build_request_parts(
    inputs: GenerationInputs,
    *,
    max_dimension: int = 1024,
    style: str = "default",
) -> list[ImagePart | TextPart]:
    """Ordered parts: source image, optional reference image, one text block."""
    parts: list[ImagePart | TextPart] = [resize_for_api(inputs.source_image, max_dimension)]
    asset_lines = ["- ASSET 1: The user's original photo. This is the source for the person's identity."]

    reference_key = None
    if inputs.style_reference_image is not None:
        parts.append(resize_for_api(inputs.style_reference_image, max_dimension))
        reference_key = f"ASSET {len(parts)}"
        asset_lines.append(f"- {reference_key}: An image showing the target hairstyle.")

    prompt = PromptManager.render(
        "four_up_sheet",
        style,
        hairstyle_instructions=build_hairstyle_instructions(inputs, reference_key),
        asset_definitions="\n".join(asset_lines),
    )
    parts.append(TextPart(text=prompt))
    logger.debug("Built %d request parts, prompt length=%d", len(parts), len(prompt))
    return parts


def describe_for_video(inputs: GenerationInputs) -> str | None:
    """Text description of the new look for the video prompt, or None if none is derivable."""
    if inputs.description:
        if inputs.color:
            return f"{inputs.description} with a vibrant {inputs.color} color"
        return inputs.description
    if inputs.color:
        return f"a new hairstyle dyed a vibrant {inputs.color} color"
    return None


def build_video_prompt(description: str, style: str = "default") -> str:
    return PromptManager.render("turntable_video", style, description=description)
