"""
Normalize raw Apify Instagram records into wire-format batch posts.

Pure functions: no I/O, and the only clock read is the fallback
publication time for records that carry no timestamp.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from competitor_timeline.boards.schemas import SourceKind
from competitor_timeline.ingestion.schemas import BatchSource
from competitor_timeline.posts.schemas import MediaType

_MENTION_RE = re.compile(r"@([A-Za-z0-9_.]+)")
_HASHTAG_RE = re.compile(r"#([A-Za-z0-9_\u00C0-\u00FF]+)")

_MEDIA_TYPES = {
    "Sidecar": MediaType.CAROUSEL,
    "Carousel": MediaType.CAROUSEL,
    "Video": MediaType.VIDEO,
}


def map_media_type(apify_type: str | None) -> MediaType:
    """Apify ``type`` to media kind; unknown or missing types count as images."""
    return _MEDIA_TYPES.get(apify_type or "", MediaType.IMAGE)


def extract_mentions(text: str) -> list[str]:
    return _MENTION_RE.findall(text)


def extract_hashtags(text: str) -> list[str]:
    return _HASHTAG_RE.findall(text)


def format_post_url(url_or_shortcode: str) -> str:
    if url_or_shortcode.startswith("http"):
        return url_or_shortcode
    return f"https://instagram.com/p/{url_or_shortcode}"


def profile_url(username: str) -> str:
    return f"https://instagram.com/{username}"


def instagram_source(username: str) -> BatchSource:
    return BatchSource(
        platform=SourceKind.INSTAGRAM,
        handle=username,
        url=profile_url(username),
    )


def _count(value: Any) -> int:
    # Instagram reports hidden like counts as -1
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


def _media_urls(record: dict[str, Any]) -> list[str]:
    urls: list[str] = []
    candidates: list[Any] = [record.get("displayUrl")]
    candidates.extend(record.get("images") or [])
    candidates.append(record.get("videoUrl"))
    for url in candidates:
        if isinstance(url, str) and url and url not in urls:
            urls.append(url)
    return urls


def invalid_reason(record: Any) -> str | None:
    """Why a raw record cannot be normalized, or None if it can."""
    if not isinstance(record, dict):
        return "not an object"
    if not record.get("id"):
        return "missing id"
    if not (record.get("url") or record.get("shortCode")):
        return "missing url"
    return None


def normalize_record(record: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """
    Convert one valid Apify record into a camelCase wire post.

    Mentions come from the record when it provides a list (even an empty
    one), otherwise from the caption. Hashtags come from the record only
    when it provides a non-empty list.
    """
    caption = record.get("caption") or ""

    mentions = record.get("mentions")
    if mentions is None:
        mentions = extract_mentions(caption)

    hashtags = record.get("hashtags") or extract_hashtags(caption)

    published_at = record.get("timestamp")
    if not published_at:
        published_at = (now or datetime.now(timezone.utc)).isoformat()

    return {
        "id": str(record["id"]),
        "url": format_post_url(record.get("url") or record["shortCode"]),
        "content": caption,
        "mediaType": map_media_type(record.get("type")).value,
        "mediaUrls": _media_urls(record),
        "publishedAt": published_at,
        "engagement": {
            "likes": _count(record.get("likesCount")),
            "comments": _count(record.get("commentsCount")),
        },
        "hashtags": list(hashtags),
        "mentions": list(mentions),
    }


@dataclass
class NormalizationStats:
    total: int = 0
    valid: int = 0
    invalid: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class NormalizationResult:
    posts: list[dict[str, Any]]
    stats: NormalizationStats


def normalize_records(
    records: Iterable[Any], now: datetime | None = None
) -> NormalizationResult:
    """Drop unusable records, normalize the rest, and count both."""
    stats = NormalizationStats()
    posts = []
    for index, record in enumerate(records):
        stats.total += 1
        reason = invalid_reason(record)
        if reason is not None:
            stats.invalid += 1
            record_id = record.get("id") if isinstance(record, dict) else None
            stats.errors.append({"index": index, "id": record_id, "reason": reason})
            continue
        posts.append(normalize_record(record, now=now))
        stats.valid += 1
    return NormalizationResult(posts=posts, stats=stats)
