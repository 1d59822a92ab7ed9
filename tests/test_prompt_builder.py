"""
Tests for request part building and prompt templates.
"""

import io

import pytest
from PIL import Image

from barberbooth.prompts import PromptManager
from barberbooth.schemas import GenerationInputs, ImagePart, TextPart
from barberbooth.services.errors import InvalidInputError
from barberbooth.services.prompt_builder import (
    build_hairstyle_instructions,
    build_request_parts,
    build_video_prompt,
    describe_for_video,
)

from conftest import make_image


@pytest.fixture
def reference_image():
    return ImagePart(data=make_image((200, 200), (10, 10, 10), fmt="PNG"), mime_type="image/png")


class TestBuildRequestParts:
    """Order and content of request parts."""

    def test_description_only(self, fade_inputs):
        parts = build_request_parts(fade_inputs)

        assert [p.kind for p in parts] == ["image", "text"]
        assert parts[0].mime_type == "image/jpeg"
        text = parts[-1].text
        assert 'The hairstyle should be: "a short fade".' in text
        assert "- ASSET 1:" in text
        assert "ASSET 2" not in text
        assert "{" not in text

    def test_reference_image_is_second_asset(self, source_image, reference_image):
        inputs = GenerationInputs(
            source_image=source_image,
            style_reference_image=reference_image,
            style_modification="make it shorter",
        )
        parts = build_request_parts(inputs)

        assert [p.kind for p in parts] == ["image", "image", "text"]
        assert parts[1].mime_type == "image/jpeg"
        text = parts[-1].text
        assert "Apply the hairstyle from ASSET 2." in text
        assert 'Modification: "make it shorter".' in text
        assert "- ASSET 2:" in text

    def test_source_is_downscaled(self):
        big = ImagePart(data=make_image((3000, 2000)))
        inputs = GenerationInputs(source_image=big, style_description="buzz cut")
        parts = build_request_parts(inputs, max_dimension=1024)
        assert Image.open(io.BytesIO(parts[0].data)).size == (1024, 683)

    def test_unreadable_source(self):
        inputs = GenerationInputs(source_image=ImagePart(data=b"nope"), style_description="buzz cut")
        with pytest.raises(InvalidInputError):
            build_request_parts(inputs)

    def test_single_text_part(self, fade_inputs):
        parts = build_request_parts(fade_inputs)
        assert sum(isinstance(p, TextPart) for p in parts) == 1


class TestHairstyleInstructions:
    """Which instruction block is chosen."""

    def test_color_only_keeps_style(self, source_image):
        inputs = GenerationInputs(source_image=source_image, hair_color="#8B4513")
        text = build_hairstyle_instructions(inputs, None)
        assert "Dye the person's current hair to this exact color: #8B4513." in text
        assert "MUST NOT be changed" in text

    def test_description_with_color(self, source_image):
        inputs = GenerationInputs(
            source_image=source_image, style_description="long waves", hair_color="#000000",
        )
        text = build_hairstyle_instructions(inputs, None)
        assert text.startswith('The hairstyle should be: "long waves".')
        assert "exactly this hex code: #000000" in text

    def test_blank_inputs_rejected(self, source_image):
        inputs = GenerationInputs(source_image=source_image, style_description="   ")
        with pytest.raises(InvalidInputError):
            build_hairstyle_instructions(inputs, None)


class TestVideoDescription:
    """describe_for_video and the turntable prompt."""

    @pytest.mark.parametrize("description, color, expected", [
        ("a short fade", None, "a short fade"),
        (" a short fade ", "#ff0000", "a short fade with a vibrant #ff0000 color"),
        (None, "#ff0000", "a new hairstyle dyed a vibrant #ff0000 color"),
        ("  ", None, None),
    ])
    def test_describe(self, source_image, description, color, expected):
        inputs = GenerationInputs(
            source_image=source_image, style_description=description, hair_color=color,
        )
        assert describe_for_video(inputs) == expected

    def test_reference_only_has_no_description(self, source_image, reference_image):
        inputs = GenerationInputs(source_image=source_image, style_reference_image=reference_image)
        assert describe_for_video(inputs) is None

    def test_video_prompt(self):
        prompt = build_video_prompt("a short fade")
        assert 'described as: "a short fade"' in prompt
        assert "360-degree" in prompt


class TestPromptManager:
    """Template loading."""

    def test_unknown_style_falls_back_to_default(self):
        assert PromptManager.get_prompt("four_up_sheet", "noir") == PromptManager.get_prompt("four_up_sheet")

    def test_missing_template(self):
        with pytest.raises(FileNotFoundError):
            PromptManager.get_prompt("does_not_exist")

    def test_style_override_and_cache(self, tmp_path, monkeypatch):
        """A style's own template wins over default and is read from disk once."""
        (tmp_path / "default").mkdir()
        (tmp_path / "default" / "greeting.txt").write_text("Hello {name}\n", encoding="utf-8")
        (tmp_path / "noir").mkdir()
        noir = tmp_path / "noir" / "greeting.txt"
        noir.write_text("Good evening {name}", encoding="utf-8")
        monkeypatch.setattr("barberbooth.prompts.manager._TEMPLATES_DIR", tmp_path)
        monkeypatch.setattr(PromptManager, "_cache", {})

        assert PromptManager.render("greeting", name="Sam") == "Hello Sam"
        assert PromptManager.render("greeting", "noir", name="Sam") == "Good evening Sam"
        noir.write_text("changed {name}", encoding="utf-8")
        assert PromptManager.render("greeting", "noir", name="Sam") == "Good evening Sam"
