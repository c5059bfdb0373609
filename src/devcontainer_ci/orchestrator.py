"""Main phase: build the dev container image and optionally run a command in it."""

from __future__ import annotations

import os
from typing import Dict, List, Mapping, Optional, Tuple

from .builders.buildx import is_buildx_installed
from .builders.devcontainer import CLI_PACKAGE, BuildArgs, DevContainerCli, ExecArgs, UpArgs
from .config import ActionInputs
from .envvars import populate_defaults
from .errors import CollaboratorFailure, EnvironmentUnavailable
from .exporters.oci import BUILDX_ARCHIVE_OUTPUT, BUILDX_DOCKER_OUTPUT, is_skopeo_installed
from .mounts import MountSpec, parse_mount
from .process import ExecFunction, exec_command
from .state import PhaseState, StateStore
from .tags import add_cache_from, image_references
from .workflow import Workflow

# Runner files the container may write to, and where they are mounted.
GITHUB_FILE_MOUNTS: Dict[str, str] = {
    "GITHUB_OUTPUT": "/mnt/github/output",
    "GITHUB_ENV": "/mnt/github/env",
    "GITHUB_PATH": "/mnt/github/path",
    "GITHUB_STEP_SUMMARY": "/mnt/github/step-summary",
}

MAX_OUTPUT_BYTES = 1_000_000
TRUNCATED_OUTPUT_BYTES = 999_966
TRUNCATION_MARKER = "TRUNCATED TO 1 MB MAX OUTPUT SIZE"


def truncate_output(text: str) -> str:
    """Caps ``text`` at 1 MB of UTF-8, never splitting a multi-byte character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= MAX_OUTPUT_BYTES:
        return text
    head = encoded[:TRUNCATED_OUTPUT_BYTES].decode("utf-8", errors="ignore")
    return head + TRUNCATION_MARKER


def platform_output(platform: Optional[str], platform_tag: Optional[str]) -> Optional[str]:
    """
    Picks the buildx output for a platform build.

    A multi-platform build cannot be loaded into the engine, so it is written to
    an OCI archive that the post phase copies to the registry. A per-platform
    build (one that gets merged later) is loaded into the local engine.
    """
    if platform and not platform_tag:
        return BUILDX_ARCHIVE_OUTPUT
    if platform and platform_tag:
        return BUILDX_DOCKER_OUTPUT
    return None


class BuildOrchestrator:
    """Sequences the main phase of the action."""

    def __init__(
        self,
        inputs: ActionInputs,
        store: StateStore,
        workflow: Workflow,
        cli: Optional[DevContainerCli] = None,
        exec_fn: ExecFunction = exec_command,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.inputs = inputs
        self.store = store
        self.workflow = workflow
        self.exec_fn = exec_fn
        self.cli = cli or DevContainerCli(exec_fn)
        self.environ = os.environ if environ is None else environ

    def run(self) -> None:
        inputs = self.inputs
        self.workflow.info("Starting...")
        self.store.clear()
        PhaseState.mark_main_started(self.store)

        if inputs.merge_tag:
            self.workflow.info(
                "mergeTag is set - skipping build (manifest merge will run in post step)"
            )
            PhaseState.defer_merge(self.store, inputs.merge_tag)
            return

        try:
            self.prepare_tools()
        except EnvironmentUnavailable as e:
            self.workflow.warning(str(e))
            return

        output = platform_output(inputs.platform, inputs.platform_tag)
        if inputs.platform_tag:
            PhaseState.record_platform_tag(self.store, inputs.platform_tag)

        cache_from = list(inputs.cache_from)
        references = self.resolve_references(cache_from)
        self.build(references, cache_from, output)

        if inputs.run_cmd:
            self.run_command(cache_from)
        else:
            self.workflow.info("No runCmd set - skipping starting/running container")

    def prepare_tools(self) -> None:
        """Checks buildx and skopeo, installing the devcontainer CLI if needed."""
        if not is_buildx_installed(self.exec_fn):
            raise EnvironmentUnavailable(
                "docker buildx not available: add a step to set up with "
                "docker/setup-buildx-action"
            )

        if not self.cli.is_cli_installed():
            self.workflow.info(f"Installing {CLI_PACKAGE}...")
            if not self.cli.install_cli():
                raise CollaboratorFailure(f"{CLI_PACKAGE} install failed!")

        if self.inputs.platform and not self.inputs.platform_tag:
            if not is_skopeo_installed(self.exec_fn):
                raise EnvironmentUnavailable(
                    "skopeo not available and is required for multi-platform builds - "
                    "make sure it is installed on your runner"
                )

    def resolve_references(self, cache_from: List[str]) -> List[str]:
        inputs = self.inputs
        if not inputs.image_name:
            if inputs.image_tag:
                self.workflow.warning(
                    "imageTag specified without specifying imageName - ignoring imageTag"
                )
            return []

        references = image_references(inputs.image_name, inputs.image_tag, inputs.platform_tag)
        add_cache_from(cache_from, references, inputs.no_cache, log=self.workflow.info)
        return references

    def build(self, references: List[str], cache_from: List[str], output: Optional[str]) -> None:
        inputs = self.inputs
        args = BuildArgs(
            workspace_folder=inputs.workspace_folder,
            config_file=inputs.resolved_config_file,
            image_name=references,
            # Per-platform builds target the runner's own engine.
            platform=None if inputs.platform_tag else inputs.platform,
            additional_cache_froms=cache_from,
            user_data_folder=inputs.user_data_folder,
            output=output,
            no_cache=inputs.no_cache,
            cache_to=list(inputs.cache_to),
        )
        with self.workflow.group("🏗️ build container"):
            outcome = self.cli.build(args, self.workflow.info)

        if not outcome.succeeded:
            self.workflow.error(
                f"Dev container build failed: {outcome.message} "
                f"(exit code: {outcome.code})\n{outcome.description}"
            )
            raise CollaboratorFailure(
                outcome.message or "Dev container build failed",
                code=outcome.code,
                description=outcome.description,
            )

    def container_environment(self) -> Tuple[List[str], List[str]]:
        """
        Returns the ``(env, mounts)`` for the container.

        Runner files such as GITHUB_OUTPUT are bind-mounted and their variables
        re-pointed at the mount so the command can write back to the job.
        """
        env = populate_defaults(self.inputs.env, self.inputs.inherit_env, self.environ)
        mounts = [parse_mount(spec).to_option() for spec in self.inputs.mounts]

        for key, target in GITHUB_FILE_MOUNTS.items():
            source = self.environ.get(key)
            if source:
                mounts.append(MountSpec("bind", source, target).to_option())
                env.append(f"{key}={target}")
        return env, mounts

    def run_command(self, cache_from: List[str]) -> None:
        inputs = self.inputs
        env, mounts = self.container_environment()

        up_args = UpArgs(
            workspace_folder=inputs.workspace_folder,
            config_file=inputs.resolved_config_file,
            additional_cache_froms=cache_from,
            skip_container_user_id_update=inputs.skip_container_user_id_update,
            env=env,
            user_data_folder=inputs.user_data_folder,
            additional_mounts=mounts,
        )
        with self.workflow.group("🏃 start container"):
            outcome = self.cli.up(up_args, self.workflow.info)
        if not outcome.succeeded:
            self.workflow.error(
                f"Dev container up failed: {outcome.message} "
                f"(exit code: {outcome.code})\n{outcome.description}"
            )
            raise CollaboratorFailure(
                outcome.message or "Dev container up failed",
                code=outcome.code,
                description=outcome.description,
            )

        exec_args = ExecArgs(
            workspace_folder=inputs.workspace_folder,
            config_file=inputs.resolved_config_file,
            command=["bash", "-c", inputs.run_cmd],
            env=env,
            user_data_folder=inputs.user_data_folder,
        )
        captured: List[str] = []

        def exec_log(message: str) -> None:
            self.workflow.info(message)
            if CLI_PACKAGE not in message:
                captured.append(message)

        exit_code = self.cli.exec(exec_args, exec_log)
        # Exposed before failing so the log of a failed command is still available.
        self.workflow.set_output("runCmdOutput", truncate_output("".join(captured)))
        if exit_code != 0:
            raise CollaboratorFailure(
                f"Dev container exec failed: (exit code: {exit_code})", code=exit_code
            )
