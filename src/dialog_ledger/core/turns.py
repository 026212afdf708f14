"""
Turn assembly for one user submission.

A submission always yields a user turn and, when there is an answer or a
video to show, a model turn right after it.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .exceptions import InvalidShapeError
from .models import Turn, TurnRole, VideoReference

VIDEO_FIELDS = ("title", "url", "thumbnail")


def coerce_video(video: VideoReference | Mapping[str, Any] | None) -> VideoReference | None:
    """
    Validate a raw video reference.

    Either every one of title, url and thumbnail is present or the reference
    is rejected as a whole.

    Raises:
        InvalidShapeError: Partial or malformed video data
    """
    if video is None or isinstance(video, VideoReference):
        return video

    if not isinstance(video, Mapping):
        raise InvalidShapeError(
            "Invalid video format.", details={"type": type(video).__name__}
        )

    missing = [name for name in VIDEO_FIELDS if not video.get(name)]
    if missing:
        raise InvalidShapeError(
            "Invalid video format.", details={"missing": ",".join(missing)}
        )

    try:
        return VideoReference(**{name: video[name] for name in VIDEO_FIELDS})
    except ValidationError as e:
        raise InvalidShapeError("Invalid video format.", details={"error": str(e)}) from e


def build_turns(
    user_text: str,
    model_text: str | None = None,
    image: str | None = None,
    video: VideoReference | Mapping[str, Any] | None = None,
) -> list[Turn]:
    """
    Build the ordered turns for one submission.

    Args:
        user_text: Text typed by the user
        model_text: Generated answer, empty or None when there is none
        image: Opaque reference to an uploaded image
        video: Video found for the question

    Returns:
        [user] or [user, model]

    Raises:
        InvalidShapeError: Video reference is missing fields
    """
    video_ref = coerce_video(video)

    turns = [Turn(role=TurnRole.USER, text_parts=[user_text], image=image or None)]

    if model_text or video_ref is not None:
        turns.append(
            Turn(
                role=TurnRole.MODEL,
                text_parts=[model_text] if model_text else [],
                video=video_ref,
            )
        )

    return turns
