"""Parser for docker-style ``--mount`` option strings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import ParseError

# Option keys mapped to the MountSpec field they set. ``None`` marks options
# that are accepted but have no effect on the mount.
MOUNT_OPTION_FIELDS: Dict[str, Optional[str]] = {
    "type": "type",
    "src": "source",
    "source": "source",
    "dst": "target",
    "destination": "target",
    "target": "target",
    "readonly": None,
    "ro": None,
}


@dataclass(frozen=True)
class MountSpec:
    """A bind or volume mount to attach to the dev container."""

    type: str
    source: str
    target: str

    def to_option(self) -> str:
        """Renders the mount in the canonical ``type=..,source=..,target=..`` form."""
        return f"type={self.type},source={self.source},target={self.target}"


def parse_mount(spec: str) -> MountSpec:
    """
    Parses a mount option string such as ``type=bind,src=/a,dst=/b``.

    Aliases are interchangeable and the last one seen wins. ``readonly`` and
    ``ro`` are tolerated (with or without a value) but ignored.
    """
    values: Dict[str, str] = {}
    for token in spec.split(","):
        key, _, value = token.partition("=")
        key = key.lower()
        if key not in MOUNT_OPTION_FIELDS:
            raise ParseError(f"Unhandled mount option '{token}'")
        field_name = MOUNT_OPTION_FIELDS[key]
        if field_name:
            values[field_name] = value

    for required in ("type", "source", "target"):
        if required not in values:
            raise ParseError(f"Mount option '{required}' is required in '{spec}'")

    return MountSpec(**values)
