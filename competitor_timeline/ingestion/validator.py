"""
Structural validation of raw ingestion batches.

Runs before any parsing so a caller gets every problem in one response
instead of the first one. Checks are positional: errors come back in
document order (top-level fields, then source, then posts by index).

Two levels:
- ``validate_envelope``: batch id, timestamp, source and the posts list.
  The ingestion endpoint rejects a batch only for these.
- ``validate_batch``: the envelope plus every field of every post. The
  scrape orchestrator runs it before sending, so its own batches are
  complete. Post defects in an agent batch are reported per post by the
  batch processor instead.
"""

from collections.abc import Mapping
from typing import Any

from competitor_timeline.boards.schemas import SourceKind

_REQUIRED_TOP_LEVEL = ("batchId", "scrapedAt")
_REQUIRED_SOURCE = ("platform", "handle", "url")
# content may be an empty string; the others must be truthy
_REQUIRED_POST = ("id", "url", "content", "publishedAt", "engagement")


def _missing(value: Any, allow_empty: bool = False) -> bool:
    if value is None:
        return True
    if allow_empty:
        return False
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_envelope(payload: Any) -> tuple[bool, list[str]]:
    """
    Check the batch envelope; posts are only checked to be a list.

    Args:
        payload: Decoded JSON body

    Returns:
        ``(valid, errors)``; ``errors`` is empty exactly when ``valid``
    """
    if not isinstance(payload, Mapping):
        return False, ["Batch must be a JSON object"]

    errors: list[str] = []

    for key in _REQUIRED_TOP_LEVEL:
        if _missing(payload.get(key)):
            errors.append(f"{key} is required")

    source = payload.get("source")
    if source is None:
        errors.append("source is required")
    elif not isinstance(source, Mapping):
        errors.append("source must be an object")
    else:
        for key in _REQUIRED_SOURCE:
            if _missing(source.get(key)):
                errors.append(f"source.{key} is required")
        platform = source.get("platform")
        if isinstance(platform, str) and platform.strip():
            try:
                SourceKind.parse(platform)
            except ValueError as e:
                errors.append(f"source.platform: {e}")

    posts = payload.get("posts")
    if posts is None:
        errors.append("posts is required")
    elif not isinstance(posts, list):
        errors.append("posts must be a list")

    return not errors, errors


def validate_batch(payload: Any) -> tuple[bool, list[str]]:
    """
    Check that a raw batch has every mandatory field, posts included.

    Returns:
        ``(valid, errors)``; ``errors`` is empty exactly when ``valid``
    """
    valid, errors = validate_envelope(payload)
    if not isinstance(payload, Mapping):
        return valid, errors

    posts = payload.get("posts")
    if isinstance(posts, list):
        for i, post in enumerate(posts):
            errors.extend(_validate_post(i, post))

    return not errors, errors


def _validate_post(index: int, post: Any) -> list[str]:
    prefix = f"posts[{index}]"
    if not isinstance(post, Mapping):
        return [f"{prefix} must be an object"]

    errors = []
    for key in _REQUIRED_POST:
        if _missing(post.get(key), allow_empty=(key == "content")):
            errors.append(f"{prefix}.{key} is required")

    engagement = post.get("engagement")
    if engagement is not None and not isinstance(engagement, Mapping):
        errors.append(f"{prefix}.engagement must be an object")
    return errors
