"""
Shared validation functions for Pydantic schemas.

Tag names are slugs; collection and category names are free text with a length
cap. Length limits come from settings so deployments can tune them.
"""
import re

from core.config import get_settings

# Lowercase alphanumeric words joined by single hyphens, e.g. 'machine-learning'
TAG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")


def validate_and_normalize_tag(tag: str) -> str:
    """
    Lowercase and trim a tag name, then check it against TAG_PATTERN.

    Raises:
        ValueError: If the tag is empty or not a slug.
    """
    normalized = tag.lower().strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    if TAG_PATTERN.match(normalized) is None:
        raise ValueError(
            f"Invalid tag format: '{normalized}'. "
            "Tags are lowercase letters, digits and single hyphens (e.g. 'web-dev').",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize a batch of tag names.

    Blank entries are dropped and the first occurrence of each name wins, so
    ['Python', ' python ', '', 'web-dev'] becomes ['python', 'web-dev'].
    """
    return list(dict.fromkeys(
        validate_and_normalize_tag(tag) for tag in tags if tag.strip()
    ))


def slugify_tag(name: str) -> str:
    """'Machine Learning' -> 'machine-learning'. Empty when nothing usable remains."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _check_length(value: str | None, limit: int, label: str) -> str | None:
    if value is not None and len(value) > limit:
        raise ValueError(
            f"{label} exceeds maximum length of {limit:,} characters "
            f"(got {len(value):,} characters).",
        )
    return value


def validate_entity_name(name: str) -> str:
    """Trim and validate a collection or category display name."""
    trimmed = name.strip()
    if not trimmed:
        raise ValueError("Name cannot be empty")
    return _check_length(trimmed, get_settings().max_name_length, "Name")


def validate_title_length(title: str | None) -> str | None:
    return _check_length(title, get_settings().max_title_length, "Title")


def validate_summary_length(summary: str | None) -> str | None:
    return _check_length(summary, get_settings().max_summary_length, "Summary")
