"""Docker engine operations: buildx detection, manifest lists and pushes."""

from __future__ import annotations

from typing import Callable, List, Optional

import docker
from docker.errors import APIError, DockerException

from ..errors import CollaboratorFailure, ManifestError
from ..process import ExecFunction


def is_buildx_installed(exec_fn: ExecFunction) -> bool:
    result = exec_fn("docker", ["buildx", "version"], {"silent": True})
    return result.exit_code == 0


def create_manifest(
    exec_fn: ExecFunction,
    image_name: str,
    tag: str,
    platform_tags: List[str],
) -> None:
    """
    Merges the per-platform images of one tag into a multi-arch tag.

    ``<image_name>:<tag>-<platform>`` must already exist in the registry for every
    entry of ``platform_tags``. One ``docker buildx imagetools create`` call is
    made per invocation; callers loop over output tags themselves.
    """
    target = f"{image_name}:{tag}"
    args = ["buildx", "imagetools", "create", "-t", target]
    args += [f"{target}-{platform_tag}" for platform_tag in platform_tags]

    result = exec_fn("docker", args, {})
    if result.exit_code != 0:
        raise ManifestError(
            f"manifest creation failed with {result.exit_code}",
            code=result.exit_code,
            description=result.stderr or None,
        )


def push_image(
    image_name: str,
    tag: str,
    log: Callable[[str], None] = print,
    client: Optional[docker.DockerClient] = None,
) -> None:
    """Pushes ``image_name:tag`` from the local engine, streaming progress to ``log``."""
    try:
        client = client or docker.from_env()
        stream = client.images.push(image_name, tag=tag, stream=True, decode=True)
        for chunk in stream:
            if "error" in chunk:
                raise CollaboratorFailure(
                    f"push failed for {image_name}:{tag}",
                    description=chunk["error"],
                )
            if "status" in chunk:
                progress = chunk.get("progress")
                log(f"{chunk['status']} {progress}" if progress else chunk["status"])
    except (APIError, DockerException) as e:
        raise CollaboratorFailure(
            f"push failed for {image_name}:{tag}", description=str(e)
        ) from e
