"""OCI archive output and registry copy via skopeo."""

from __future__ import annotations

from ..errors import CollaboratorFailure
from ..process import ExecFunction

ARCHIVE_PATH = "/tmp/output.tar"

# buildx --output values for the two platform build modes.
BUILDX_ARCHIVE_OUTPUT = f"type=oci,dest={ARCHIVE_PATH}"
BUILDX_DOCKER_OUTPUT = "type=docker"


def archive_reference(tag: str) -> str:
    """Reference to ``tag`` inside the archive written by a multi-platform build."""
    return f"oci-archive:{ARCHIVE_PATH}:{tag}"


def registry_reference(image_name: str, tag: str) -> str:
    return f"docker://{image_name}:{tag}"


def is_skopeo_installed(exec_fn: ExecFunction) -> bool:
    result = exec_fn("skopeo", ["--version"], {"silent": True})
    return result.exit_code == 0


def copy_image(exec_fn: ExecFunction, all_images: bool, source: str, dest: str) -> None:
    """
    Copies an image between transports with ``skopeo copy``.

    With ``all_images`` every platform of a manifest list is copied, not just the
    one matching the runner.
    """
    args = ["copy"]
    if all_images:
        args.append("--all")
    args += [source, dest]

    result = exec_fn("skopeo", args, {})
    if result.exit_code != 0:
        raise CollaboratorFailure(
            f"skopeo copy failed with {result.exit_code}",
            code=result.exit_code,
            description=result.stderr or None,
        )
