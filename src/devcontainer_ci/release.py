"""Post phase: publish what the main phase built, or merge per-platform images."""

from __future__ import annotations

import os
from typing import Callable, Mapping, Optional

from .builders.buildx import create_manifest, push_image
from .config import ActionInputs
from .errors import ConfigurationError
from .exporters.oci import archive_reference, copy_image, registry_reference
from .process import ExecFunction, exec_command
from .push import evaluate_push
from .state import PhaseState, StateStore
from .tags import split_tags
from .workflow import Workflow

# (image_name, tag, log) -> None
PushFunction = Callable[[str, str, Callable[[str], None]], None]


class ReleaseOrchestrator:
    """
    Sequences the post phase of the action.

    Loops over output tags stop at the first failure, for merges and pushes alike.
    """

    def __init__(
        self,
        inputs: ActionInputs,
        store: StateStore,
        workflow: Workflow,
        exec_fn: ExecFunction = exec_command,
        push_fn: PushFunction = push_image,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.inputs = inputs
        self.store = store
        self.workflow = workflow
        self.exec_fn = exec_fn
        self.push_fn = push_fn
        self.environ = os.environ if environ is None else environ
        self.state = PhaseState.load(store)

    def run(self) -> None:
        try:
            if self.state.merge_tag:
                self.merge()
            else:
                self.publish()
        finally:
            # Discard this run's state.
            self.store.clear()

    def merge(self) -> None:
        image_name = self.inputs.image_name
        if not image_name:
            raise ConfigurationError("imageName is required for manifest merge")

        platform_tags = split_tags(self.state.merge_tag)
        for tag in split_tags(self.inputs.image_tag):
            self.workflow.info(f"Creating multi-arch manifest for '{image_name}:{tag}'...")
            create_manifest(self.exec_fn, image_name, tag, platform_tags)

    def publish(self) -> None:
        inputs = self.inputs
        verdict = evaluate_push(
            inputs.push,
            bool(inputs.image_name),
            self.environ.get("GITHUB_REF"),
            self.environ.get("GITHUB_EVENT_NAME"),
            inputs.ref_filter_for_push,
            inputs.event_filter_for_push,
        )
        if not verdict.proceed:
            self.workflow.info(verdict.reason)
            return

        image_name = inputs.image_name
        if not image_name:
            # Only reachable with push=always.
            self.workflow.error("imageName is required to push images")
            return

        platform_tag = self.state.platform_tag
        for tag in split_tags(inputs.image_tag):
            if platform_tag:
                self.workflow.info(f"Pushing platform image '{image_name}:{tag}-{platform_tag}'...")
                self.push_fn(image_name, f"{tag}-{platform_tag}", self.workflow.info)
            elif inputs.platform:
                # The build wrote an OCI archive rather than loading into the engine.
                self.workflow.info(f"Copying multiplatform image '{image_name}:{tag}'...")
                copy_image(
                    self.exec_fn,
                    True,
                    archive_reference(tag),
                    registry_reference(image_name, tag),
                )
            else:
                self.workflow.info(f"Pushing image '{image_name}:{tag}'...")
                self.push_fn(image_name, tag, self.workflow.info)
