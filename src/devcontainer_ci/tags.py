"""Image tag and reference resolution."""

from __future__ import annotations

import re
from typing import Callable, List, Optional

DEFAULT_TAG = "latest"

_TAG_SEPARATOR = re.compile(r"\s*,\s*")


def split_tags(value: Optional[str]) -> List[str]:
    """Splits a comma-separated tag list, keeping order and duplicates."""
    return _TAG_SEPARATOR.split(value or DEFAULT_TAG)


def compute_tags(base_tag: Optional[str], platform_tag: Optional[str]) -> List[str]:
    """
    Expands the ``imageTag`` input into the concrete tags of this run.

    When a platform tag is set every tag gets a ``-<platform_tag>`` suffix so the
    per-architecture images can later be merged into one manifest list.
    """
    tags = split_tags(base_tag)
    if platform_tag:
        return [f"{tag}-{platform_tag}" for tag in tags]
    return tags


def image_references(
    image_name: Optional[str],
    base_tag: Optional[str],
    platform_tag: Optional[str] = None,
) -> List[str]:
    return [f"{image_name}:{tag}" for tag in compute_tags(base_tag, platform_tag)]


def add_cache_from(
    cache_from: List[str],
    references: List[str],
    no_cache: bool,
    log: Callable[[str], None] = print,
) -> None:
    """
    Uses the image being built as a cache source.

    Only a single reference is added (at the front of ``cache_from``); with
    several tags there is no obvious candidate so the list is left alone.
    """
    if len(references) == 1:
        reference = references[0]
        if not no_cache and reference not in cache_from:
            log(f"Adding --cache-from {reference} to build args")
            cache_from.insert(0, reference)
    else:
        log("Not adding --cache-from automatically since multiple image tags were supplied")
