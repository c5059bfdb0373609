"""Main CLI entry point for devcontainer-ci."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from .config import ActionInputs
from .errors import CollaboratorFailure, DevcontainerCIError
from .orchestrator import BuildOrchestrator
from .release import ReleaseOrchestrator
from .state import FileStateStore, GitHubStateStore, PhaseState, StateStore
from .workflow import Workflow

DEFAULT_LOCAL_STATE = Path(".devcontainer-ci-state.yaml")


@click.group()
def cli():
    """devcontainer-ci: build, run and publish dev container images in CI."""
    pass


def load_context(inputs_file: Optional[Path], state_file: Optional[Path]) -> Tuple[ActionInputs, StateStore]:
    """
    Resolves where inputs and state come from.

    Inside GitHub Actions both come from the runner. A YAML inputs file switches
    to a local state file so the two phases can be run by hand.
    """
    if inputs_file:
        return ActionInputs.from_yaml(inputs_file), FileStateStore(state_file or DEFAULT_LOCAL_STATE)
    store = FileStateStore(state_file) if state_file else GitHubStateStore()
    return ActionInputs.from_env(), store


def run_phase(phase: str, inputs_file: Optional[Path], state_file: Optional[Path]) -> None:
    workflow = Workflow()
    try:
        inputs, store = load_context(inputs_file, state_file)
        if phase == "auto":
            phase = "post" if PhaseState.load(store).has_run_main else "main"

        if phase == "main":
            BuildOrchestrator(inputs, store, workflow).run()
        else:
            ReleaseOrchestrator(inputs, store, workflow).run()
    except CollaboratorFailure as e:
        if e.description:
            workflow.error(e.details())
        workflow.set_failed(e.message)
    except DevcontainerCIError as e:
        workflow.set_failed(str(e))
    except OSError as e:
        # Runner files (GITHUB_OUTPUT, state) that cannot be written.
        workflow.set_failed(str(e))

    if workflow.failed:
        sys.exit(1)


inputs_option = click.option(
    "--inputs",
    "inputs_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file of action inputs, for running outside GitHub Actions.",
)
state_option = click.option(
    "--state-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML file holding state shared between the main and post phases.",
)


@cli.command()
@inputs_option
@state_option
def main(inputs_file: Optional[Path], state_file: Optional[Path]):
    """Builds the dev container and runs runCmd inside it."""
    run_phase("main", inputs_file, state_file)


@cli.command()
@inputs_option
@state_option
def post(inputs_file: Optional[Path], state_file: Optional[Path]):
    """Pushes the built images or merges per-platform images into a manifest list."""
    run_phase("post", inputs_file, state_file)


@cli.command()
@inputs_option
@state_option
def run(inputs_file: Optional[Path], state_file: Optional[Path]):
    """Runs the post phase if the main phase already ran, otherwise the main phase."""
    run_phase("auto", inputs_file, state_file)


if __name__ == "__main__":
    cli()
