"""Decides whether the post phase publishes the images built by the main phase."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .errors import ConfigurationError


class PushMode(str, Enum):
    """Accepted values of the ``push`` input. An unset input is ``None``."""

    NEVER = "never"
    ALWAYS = "always"
    FILTER = "filter"


class PushDecision(str, Enum):
    SKIP = "skip"
    PUSH_ALL = "push-all"
    PUSH_FILTERED = "push-filtered"


@dataclass(frozen=True)
class PushVerdict:
    """The outcome of a push decision together with the reason shown in the log."""

    decision: PushDecision
    reason: str = ""

    @property
    def proceed(self) -> bool:
        return self.decision != PushDecision.SKIP


def evaluate_push(
    push_mode: Optional[str],
    has_image_name: bool,
    ref: Optional[str],
    event_name: Optional[str],
    ref_filter: List[str],
    event_filter: List[str],
) -> PushVerdict:
    """
    Applies the push rules in order:

    1. ``never``, or unset without an image name: skip.
    2. ``filter``, or unset with an image name: skip unless ``ref`` and
       ``event_name`` pass the (non-empty) filters.
    3. ``always``: push without consulting the filters.

    Any other mode is a configuration error.
    """
    if push_mode == PushMode.NEVER.value:
        return PushVerdict(PushDecision.SKIP, "Image push skipped because 'push' is set to 'never'")
    if not push_mode and not has_image_name:
        return PushVerdict(
            PushDecision.SKIP, "Image push skipped because 'push' is unset and no imageName was given"
        )

    if push_mode == PushMode.FILTER.value or (not push_mode and has_image_name):
        if ref_filter and ref not in ref_filter:
            return PushVerdict(
                PushDecision.SKIP,
                f"Image push skipped because GITHUB_REF ({ref}) is not in refFilterForPush",
            )
        if event_filter and event_name not in event_filter:
            return PushVerdict(
                PushDecision.SKIP,
                f"Image push skipped because GITHUB_EVENT_NAME ({event_name}) "
                "is not in eventFilterForPush",
            )
        return PushVerdict(PushDecision.PUSH_FILTERED)

    if push_mode == PushMode.ALWAYS.value:
        return PushVerdict(PushDecision.PUSH_ALL)

    raise ConfigurationError(f"Unexpected push value ('{push_mode}')")


def decide_push(
    push_mode: Optional[str],
    has_image_name: bool,
    ref: Optional[str],
    event_name: Optional[str],
    ref_filter: List[str],
    event_filter: List[str],
) -> PushDecision:
    return evaluate_push(
        push_mode, has_image_name, ref, event_name, ref_filter, event_filter
    ).decision
