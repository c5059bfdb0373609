"""Wrapper for executing the devcontainer CLI (build, up, exec)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

from pydantic import BaseModel, ValidationError

from ..process import ExecFunction, LineSink, exec_command, stream_command

CLI_PACKAGE = "@devcontainers/cli"

# (command, args, on_line) -> exit code
StreamFunction = Callable[[str, List[str], LineSink], int]


class Outcome(BaseModel):
    """Result object printed by the devcontainer CLI as its last line of output."""

    outcome: Literal["success", "error"]
    message: Optional[str] = None
    description: Optional[str] = None
    code: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"


@dataclass
class BuildArgs:
    workspace_folder: str
    image_name: List[str] = field(default_factory=list)
    config_file: Optional[str] = None
    platform: Optional[str] = None
    additional_cache_froms: List[str] = field(default_factory=list)
    user_data_folder: Optional[str] = None
    output: Optional[str] = None
    no_cache: bool = False
    cache_to: List[str] = field(default_factory=list)


@dataclass
class UpArgs:
    workspace_folder: str
    config_file: Optional[str] = None
    additional_cache_froms: List[str] = field(default_factory=list)
    skip_container_user_id_update: bool = False
    env: List[str] = field(default_factory=list)
    user_data_folder: Optional[str] = None
    additional_mounts: List[str] = field(default_factory=list)


@dataclass
class ExecArgs:
    workspace_folder: str
    command: List[str]
    config_file: Optional[str] = None
    env: List[str] = field(default_factory=list)
    user_data_folder: Optional[str] = None


def _common_args(workspace_folder: str, config_file: Optional[str], user_data_folder: Optional[str]) -> List[str]:
    args = ["--workspace-folder", workspace_folder]
    if config_file:
        args += ["--config", config_file]
    if user_data_folder:
        args += ["--user-data-folder", user_data_folder]
    return args


def build_command_args(args: BuildArgs) -> List[str]:
    cmd = ["build", *_common_args(args.workspace_folder, args.config_file, args.user_data_folder)]
    for image_name in args.image_name:
        cmd += ["--image-name", image_name]
    if args.platform:
        cmd += ["--platform", args.platform]
    if args.output:
        cmd += ["--output", args.output]
    for cache_from in args.additional_cache_froms:
        cmd += ["--cache-from", cache_from]
    for cache_to in args.cache_to:
        cmd += ["--cache-to", cache_to]
    if args.no_cache:
        cmd.append("--no-cache")
    return cmd


def up_command_args(args: UpArgs) -> List[str]:
    cmd = ["up", *_common_args(args.workspace_folder, args.config_file, args.user_data_folder)]
    for cache_from in args.additional_cache_froms:
        cmd += ["--cache-from", cache_from]
    if args.skip_container_user_id_update:
        cmd += ["--update-remote-user-uid-default", "off"]
    for env in args.env:
        cmd += ["--remote-env", env]
    for mount in args.additional_mounts:
        cmd += ["--mount", mount]
    return cmd


def exec_command_args(args: ExecArgs) -> List[str]:
    cmd = ["exec", *_common_args(args.workspace_folder, args.config_file, args.user_data_folder)]
    for env in args.env:
        cmd += ["--remote-env", env]
    return cmd + list(args.command)


def parse_outcome(lines: List[str], exit_code: int) -> Outcome:
    """
    Finds the JSON result among the CLI output.

    The CLI logs freely before printing its result, so the last line that parses
    as a JSON object is taken. Without one the exit code decides.
    """
    for line in reversed(lines):
        text = line.strip()
        if not text.startswith("{"):
            continue
        try:
            outcome = Outcome.model_validate_json(text)
        except ValidationError:
            continue
        if outcome.code is None and not outcome.succeeded:
            outcome = outcome.model_copy(update={"code": exit_code})
        return outcome

    if exit_code == 0:
        return Outcome(outcome="success")
    return Outcome(
        outcome="error",
        message="devcontainer CLI did not report a result",
        code=exit_code,
    )


class DevContainerCli:
    """Interfaces with the 'devcontainer' CLI to build and run the dev container."""

    def __init__(
        self,
        exec_fn: ExecFunction = exec_command,
        stream_fn: StreamFunction = stream_command,
        executable: str = "devcontainer",
    ):
        self.exec_fn = exec_fn
        self.stream_fn = stream_fn
        self.executable = executable

    def is_cli_installed(self) -> bool:
        result = self.exec_fn(self.executable, ["--version"], {"silent": True})
        return result.exit_code == 0

    def install_cli(self) -> bool:
        result = self.exec_fn("npm", ["install", "-g", CLI_PACKAGE], {})
        return result.exit_code == 0

    def _run_with_outcome(self, args: List[str], log: LineSink) -> Outcome:
        lines: List[str] = []

        def on_line(line: str) -> None:
            lines.append(line)
            log(line)

        exit_code = self.stream_fn(self.executable, args, on_line)
        return parse_outcome(lines, exit_code)

    def build(self, args: BuildArgs, log: LineSink) -> Outcome:
        return self._run_with_outcome(build_command_args(args), log)

    def up(self, args: UpArgs, log: LineSink) -> Outcome:
        return self._run_with_outcome(up_command_args(args), log)

    def exec(self, args: ExecArgs, log: LineSink) -> int:
        """Runs a command in the started container and returns its exit code."""
        return self.stream_fn(self.executable, exec_command_args(args), log)
