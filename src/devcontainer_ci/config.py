"""Action inputs, validated once when a phase starts, using Pydantic."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union, get_origin

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

TRUE_VALUES = ("true", "True", "TRUE")
FALSE_VALUES = ("false", "False", "FALSE")


def input_env_name(name: str) -> str:
    """Name of the environment variable the runner uses for input ``name``."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(environ: Mapping[str, str], name: str) -> str:
    return environ.get(input_env_name(name), "").strip()


def get_multiline_input(environ: Mapping[str, str], name: str) -> List[str]:
    lines = environ.get(input_env_name(name), "").split("\n")
    return [line.strip() for line in lines if line.strip()]


def get_boolean_input(environ: Mapping[str, str], name: str) -> Optional[bool]:
    value = get_input(environ, name)
    if not value:
        return None
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Input does not meet YAML 1.2 \"Core Schema\" specification: {name}\n"
        "Support boolean input list: `true | True | TRUE | false | False | FALSE`"
    )


class ActionInputs(BaseModel):
    """The inputs of the action, shared by the main and post phases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    checkout_path: str = Field(".", alias="checkoutPath")
    """Repository checkout the dev container is built from."""

    sub_folder: str = Field("", alias="subFolder")
    """Folder inside the checkout holding the .devcontainer configuration."""

    config_file: Optional[str] = Field(None, alias="configFile")
    """devcontainer.json path relative to the checkout, when not the default one."""

    image_name: Optional[str] = Field(None, alias="imageName")
    """Image name (without tag) to build and publish."""

    image_tag: Optional[str] = Field(None, alias="imageTag")
    """Comma-separated tags. Defaults to 'latest'."""

    platform: Optional[str] = None
    """Platforms for a multi-platform build, e.g. 'linux/amd64,linux/arm64'."""

    platform_tag: Optional[str] = Field(None, alias="platformTag")
    """Suffix marking per-platform images that are merged later, e.g. 'linux-arm64'."""

    merge_tag: Optional[str] = Field(None, alias="mergeTag")
    """Comma-separated platform tags to merge into multi-arch tags instead of building."""

    run_cmd: Optional[str] = Field(None, alias="runCmd")
    """Command to run inside the built container."""

    env: List[str] = Field(default_factory=list)
    """Environment entries (NAME=value or NAME) for the container."""

    inherit_env: bool = Field(False, alias="inheritEnv")

    cache_from: List[str] = Field(default_factory=list, alias="cacheFrom")
    cache_to: List[str] = Field(default_factory=list, alias="cacheTo")
    no_cache: bool = Field(False, alias="noCache")

    skip_container_user_id_update: bool = Field(False, alias="skipContainerUserIdUpdate")

    user_data_folder: Optional[str] = Field(None, alias="userDataFolder")

    mounts: List[str] = Field(default_factory=list)
    """Additional docker-style mount strings for the container."""

    push: Optional[str] = None
    """Push mode: 'never', 'filter' or 'always'. Unset pushes when imageName is set."""

    ref_filter_for_push: List[str] = Field(default_factory=list, alias="refFilterForPush")
    event_filter_for_push: List[str] = Field(default_factory=list, alias="eventFilterForPush")

    @field_validator(
        "config_file",
        "image_name",
        "image_tag",
        "platform",
        "platform_tag",
        "merge_tag",
        "run_cmd",
        "user_data_folder",
        "push",
        mode="before",
    )
    @classmethod
    def empty_as_none(cls, value: Any) -> Any:
        if isinstance(value, str) and value == "":
            return None
        return value

    @property
    def workspace_folder(self) -> str:
        return os.path.abspath(os.path.join(self.checkout_path, self.sub_folder))

    @property
    def resolved_config_file(self) -> Optional[str]:
        if not self.config_file:
            return None
        return os.path.abspath(os.path.join(self.checkout_path, self.config_file))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ActionInputs:
        """Reads the inputs the Actions runner passes as INPUT_* variables."""
        environ = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            if get_origin(field.annotation) is list:
                data[alias] = get_multiline_input(environ, alias)
            elif field.annotation is bool:
                value = get_boolean_input(environ, alias)
                if value is not None:
                    data[alias] = value
            else:
                value = get_input(environ, alias)
                if value:
                    data[alias] = value
        return cls._validate(data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> ActionInputs:
        """Loads inputs from a YAML file keyed by input name, for local runs."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls._validate(data)

    @classmethod
    def _validate(cls, data: Dict[str, Any]) -> ActionInputs:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid action inputs: {e}") from e
