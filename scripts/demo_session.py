"""Demo script: run one generation session end to end.

Run with:
    USE_MOCK_API=true python3 scripts/demo_session.py photo.jpg --style "a short fade"

With USE_MOCK_API unset, the Gemini providers are used and GEMINI_API_KEY
must be set. Writes the four views, the printable sheet and (with --video)
the turntable video to the output directory.
"""

import argparse
import asyncio
import logging
import mimetypes
from pathlib import Path

from barberbooth.config import get_settings
from barberbooth.schemas import GenerationInputs, ImagePart, SessionStatus, VideoStatus
from barberbooth.services.errors import split_error_message
from barberbooth.services.generation_session import create_session

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("demo_session")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("source", type=Path, help="Photo of the person (JPEG/PNG)")
    parser.add_argument("--style", help="Hairstyle description")
    parser.add_argument("--reference", type=Path, help="Photo showing the target hairstyle")
    parser.add_argument("--modification", help="Change to apply on top of the reference style")
    parser.add_argument("--color", help="Hair color, e.g. #8B4513")
    parser.add_argument("--video", action="store_true", help="Also generate the turntable video")
    parser.add_argument("--out", type=Path, default=Path("demo_output"))
    return parser.parse_args()


def load_image(path: Path) -> ImagePart:
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    return ImagePart(data=path.read_bytes(), mime_type=mime_type)


async def main() -> int:
    args = parse_args()
    inputs = GenerationInputs(
        source_image=load_image(args.source),
        style_description=args.style,
        style_reference_image=load_image(args.reference) if args.reference else None,
        style_modification=args.modification,
        hair_color=args.color,
    )

    session = create_session(settings)
    status = await session.start(inputs)
    if status != SessionStatus.COMPLETED:
        friendly, details = split_error_message(session.error)
        logger.error("Generation failed: %s", friendly)
        if details:
            logger.error("Details: %s", details)
        return 1

    args.out.mkdir(parents=True, exist_ok=True)
    for angle, result in session.angle_results.items():
        (args.out / f"{angle.value}.jpg").write_bytes(result.image_bytes)
    (args.out / "four_up_sheet.jpg").write_bytes(session.build_sheet())
    logger.info("Views and sheet written to %s", args.out)

    if args.video:
        video = await session.generate_video(on_progress=lambda message: logger.info("%s", message))
        if video.status != VideoStatus.DONE:
            logger.error("Video failed (%s): %s", video.error_kind, video.error_message)
            return 1
        (args.out / "turntable.mp4").write_bytes(session.video_bytes)
        logger.info("Video written to %s", args.out / "turntable.mp4")

    logger.info("Image service metrics: %s", session.image_client.get_metrics())
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
