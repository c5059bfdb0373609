"""State handed from the main phase of a CI run to its post phase."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import yaml

from .errors import ConfigurationError

HAS_RUN_MAIN = "hasRunMain"
MERGE_TAG = "mergeTag"
PLATFORM_TAG = "platformTag"


class StateStore:
    """
    Key/value persistence shared by the two phases of one run.

    ``load`` returns an empty string for keys that were never saved, matching
    how the Actions runner exposes missing state.
    """

    def save(self, key: str, value: str) -> None:
        raise NotImplementedError

    def load(self, key: str) -> str:
        raise NotImplementedError

    def clear(self) -> None:
        """Forgets everything saved by an earlier run."""
        raise NotImplementedError


class MemoryStateStore(StateStore):
    def __init__(self, values: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(values or {})

    def save(self, key: str, value: str) -> None:
        self.values[key] = value

    def load(self, key: str) -> str:
        return self.values.get(key, "")

    def clear(self) -> None:
        self.values.clear()


class GitHubStateStore(StateStore):
    """
    Uses the Actions runner's own state mechanism.

    Values saved by appending to the ``GITHUB_STATE`` file during the main step
    come back as ``STATE_<key>`` environment variables in the post step.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def save(self, key: str, value: str) -> None:
        state_file = self.environ.get("GITHUB_STATE")
        if not state_file:
            raise ConfigurationError(
                "GITHUB_STATE is not set; pass --state-file when running outside GitHub Actions"
            )
        with open(state_file, "a", encoding="utf-8") as f:
            f.write(f"{key}={value}\n")

    def load(self, key: str) -> str:
        return self.environ.get(f"STATE_{key}", "")

    def clear(self) -> None:
        # The runner scopes GITHUB_STATE to a single job run.
        pass


class FileStateStore(StateStore):
    """YAML-backed store for running both phases locally."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r") as f:
            return yaml.safe_load(f) or {}

    def save(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(values, f, default_flow_style=False)

    def load(self, key: str) -> str:
        return str(self._read().get(key, ""))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


@dataclass(frozen=True)
class PhaseState:
    """What the post phase needs to know about decisions made by the main phase."""

    has_run_main: bool = False
    merge_tag: Optional[str] = None
    """Comma-separated platform tags to merge; set only when the build was deferred."""

    platform_tag: Optional[str] = None
    """Platform suffix of the images built by this run."""

    @classmethod
    def load(cls, store: StateStore) -> PhaseState:
        return cls(
            has_run_main=store.load(HAS_RUN_MAIN) == "true",
            merge_tag=store.load(MERGE_TAG) or None,
            platform_tag=store.load(PLATFORM_TAG) or None,
        )

    @staticmethod
    def mark_main_started(store: StateStore) -> None:
        store.save(HAS_RUN_MAIN, "true")

    @staticmethod
    def defer_merge(store: StateStore, merge_tag: str) -> None:
        store.save(MERGE_TAG, merge_tag)

    @staticmethod
    def record_platform_tag(store: StateStore, platform_tag: str) -> None:
        store.save(PLATFORM_TAG, platform_tag)
