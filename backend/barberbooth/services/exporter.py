from __future__ import annotations
"""Session export: persists finished sessions to the media volume.

Layout per session::

    <MEDIA_VOLUME>/<session_id>/
        source.jpg          compressed source photo
        <angle>.jpg         one per finished view
        video.mp4           when a video was generated
        session.json        inputs summary, statuses, video state
"""

import json
import logging
import os
from typing import Any, Protocol

from barberbooth.config import Settings, get_settings
from barberbooth.schemas.generation import ANGLES, AngleStatus, SessionSnapshot
from barberbooth.services.sheet_codec import compress_for_storage

logger = logging.getLogger(__name__)


class SessionExporter(Protocol):
    def export(self, snapshot: SessionSnapshot) -> str:
        """Persist a snapshot; returns a location relative to the store root."""
        ...


class MediaVolumeExporter:
    """Writes session files under a local media directory."""

    def __init__(self, root: str, max_dimension: int = 512) -> None:
        self.root = root
        self.max_dimension = max_dimension

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> MediaVolumeExporter:
        settings = settings or get_settings()
        return cls(settings.MEDIA_VOLUME, settings.STORAGE_IMAGE_MAX_DIMENSION)

    def export(self, snapshot: SessionSnapshot) -> str:
        dir_path = os.path.join(self.root, snapshot.session_id)
        os.makedirs(dir_path, exist_ok=True)

        files: dict[str, str] = {}
        files["source"] = self._save(
            dir_path, "source.jpg",
            compress_for_storage(snapshot.inputs.source_image.data, self.max_dimension),
        )
        for angle in ANGLES:
            result = snapshot.angle_results.get(angle)
            if result is None or result.status != AngleStatus.DONE:
                continue
            files[angle.value] = self._save(
                dir_path, f"{angle.value}.jpg",
                compress_for_storage(result.image_bytes, self.max_dimension),
            )
        if snapshot.video_bytes:
            files["video"] = self._save(dir_path, "video.mp4", snapshot.video_bytes)

        with open(os.path.join(dir_path, "session.json"), "w", encoding="utf-8") as f:
            json.dump(_manifest(snapshot, files), f, ensure_ascii=False, indent=2)

        logger.info("Session %s exported to %s (%d files)", snapshot.session_id, dir_path, len(files) + 1)
        return snapshot.session_id

    @staticmethod
    def _save(dir_path: str, filename: str, data: bytes) -> str:
        with open(os.path.join(dir_path, filename), "wb") as f:
            f.write(data)
        return filename


def _manifest(snapshot: SessionSnapshot, files: dict[str, str]) -> dict[str, Any]:
    inputs = snapshot.inputs
    return {
        "session_id": snapshot.session_id,
        "created_at": snapshot.created_at.isoformat(),
        "status": snapshot.status.value,
        "inputs": {
            "style_description": inputs.description or None,
            "style_modification": inputs.modification or None,
            "hair_color": inputs.color or None,
            "has_reference_image": inputs.style_reference_image is not None,
        },
        "angles": {
            angle.value: {
                "status": result.status.value,
                "error_message": result.error_message,
            }
            for angle, result in snapshot.angle_results.items()
        },
        "video": snapshot.video.model_dump(mode="json"),
        "files": files,
    }
