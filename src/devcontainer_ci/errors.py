"""Exceptions raised by devcontainer-ci."""

from __future__ import annotations

from typing import Optional


class DevcontainerCIError(Exception):
    """Base class for every failure that should mark the CI run as failed."""


class ParseError(DevcontainerCIError):
    """A mount option string could not be parsed."""


class ConfigurationError(DevcontainerCIError):
    """An action input holds a value the action does not understand."""


class CollaboratorFailure(DevcontainerCIError):
    """An external tool (devcontainer CLI, docker, skopeo) reported a failure."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        description: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.description = description

    def details(self) -> str:
        text = self.message
        if self.code is not None:
            text += f" (exit code: {self.code})"
        if self.description:
            text += f"\n{self.description}"
        return text


class ManifestError(CollaboratorFailure):
    """Merging platform images into a multi-arch tag failed."""


class EnvironmentUnavailable(DevcontainerCIError):
    """A required helper binary is not installed on the runner."""
