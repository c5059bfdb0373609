import pytest

from devcontainer_ci.config import ActionInputs
from devcontainer_ci.errors import CollaboratorFailure, ConfigurationError, ManifestError
from devcontainer_ci.process import ExecResult
from devcontainer_ci.release import ReleaseOrchestrator
from devcontainer_ci.state import MemoryStateStore
from devcontainer_ci.workflow import Workflow

MAIN_REF = {"GITHUB_REF": "refs/heads/main", "GITHUB_EVENT_NAME": "push"}


@pytest.fixture
def exec_fn(mocker):
    return mocker.Mock(return_value=ExecResult(0, "", ""))


@pytest.fixture
def push_fn(mocker):
    return mocker.Mock()


def make_release(exec_fn, push_fn, state=None, environ=None, **inputs):
    workflow = Workflow({})
    release = ReleaseOrchestrator(
        ActionInputs(**inputs),
        MemoryStateStore(state),
        workflow,
        exec_fn=exec_fn,
        push_fn=push_fn,
        environ=MAIN_REF if environ is None else environ,
    )
    return release, workflow


def test_merge_creates_one_manifest_per_tag(exec_fn, push_fn):
    release, _ = make_release(
        exec_fn,
        push_fn,
        state={"hasRunMain": "true", "mergeTag": "linux-amd64, linux-arm64"},
        imageName="ghcr.io/o/i",
        imageTag="v1,latest",
    )

    release.run()

    assert [c.args for c in exec_fn.call_args_list] == [
        (
            "docker",
            ["buildx", "imagetools", "create", "-t", "ghcr.io/o/i:v1",
             "ghcr.io/o/i:v1-linux-amd64", "ghcr.io/o/i:v1-linux-arm64"],
            {},
        ),
        (
            "docker",
            ["buildx", "imagetools", "create", "-t", "ghcr.io/o/i:latest",
             "ghcr.io/o/i:latest-linux-amd64", "ghcr.io/o/i:latest-linux-arm64"],
            {},
        ),
    ]
    push_fn.assert_not_called()


def test_merge_stops_at_first_failure(exec_fn, push_fn):
    exec_fn.return_value = ExecResult(1, "", "manifest unknown")
    release, _ = make_release(
        exec_fn, push_fn, state={"mergeTag": "linux-amd64"}, imageName="ghcr.io/o/i", imageTag="v1,v2"
    )

    with pytest.raises(ManifestError, match="manifest creation failed with 1"):
        release.run()
    assert exec_fn.call_count == 1


def test_merge_requires_image_name(exec_fn, push_fn):
    release, _ = make_release(exec_fn, push_fn, state={"mergeTag": "linux-amd64"})

    with pytest.raises(ConfigurationError, match="imageName is required for manifest merge"):
        release.run()


def test_push_skipped_by_ref_filter(exec_fn, push_fn):
    release, _ = make_release(
        exec_fn,
        push_fn,
        environ={"GITHUB_REF": "refs/heads/dev", "GITHUB_EVENT_NAME": "push"},
        imageName="ghcr.io/o/i",
        refFilterForPush=["refs/heads/main"],
    )

    release.run()

    push_fn.assert_not_called()
    exec_fn.assert_not_called()


def test_push_never(exec_fn, push_fn):
    release, _ = make_release(exec_fn, push_fn, imageName="ghcr.io/o/i", push="never")
    release.run()
    push_fn.assert_not_called()


def test_push_each_tag(exec_fn, push_fn):
    release, workflow = make_release(exec_fn, push_fn, imageName="ghcr.io/o/i", imageTag="v1, latest")

    release.run()

    assert [c.args[:2] for c in push_fn.call_args_list] == [
        ("ghcr.io/o/i", "v1"),
        ("ghcr.io/o/i", "latest"),
    ]
    assert not workflow.failed


def test_push_platform_tag_images(exec_fn, push_fn):
    release, _ = make_release(
        exec_fn,
        push_fn,
        state={"hasRunMain": "true", "platformTag": "linux-arm64"},
        imageName="ghcr.io/o/i",
        imageTag="v1,latest",
        platform="linux/arm64",
        push="always",
    )

    release.run()

    assert [c.args[:2] for c in push_fn.call_args_list] == [
        ("ghcr.io/o/i", "v1-linux-arm64"),
        ("ghcr.io/o/i", "latest-linux-arm64"),
    ]
    exec_fn.assert_not_called()


def test_multiplatform_archive_is_copied(exec_fn, push_fn):
    release, _ = make_release(
        exec_fn,
        push_fn,
        state={"hasRunMain": "true"},
        imageName="ghcr.io/o/i",
        imageTag="v1",
        platform="linux/amd64,linux/arm64",
        push="filter",
    )

    release.run()

    exec_fn.assert_called_once_with(
        "skopeo",
        ["copy", "--all", "oci-archive:/tmp/output.tar:v1", "docker://ghcr.io/o/i:v1"],
        {},
    )
    push_fn.assert_not_called()


def test_push_failure_stops_loop(exec_fn, push_fn):
    push_fn.side_effect = CollaboratorFailure("push failed for ghcr.io/o/i:v1")
    release, _ = make_release(exec_fn, push_fn, imageName="ghcr.io/o/i", imageTag="v1,v2")

    with pytest.raises(CollaboratorFailure):
        release.run()
    assert push_fn.call_count == 1


def test_push_always_without_image_name(exec_fn, push_fn, capsys):
    release, workflow = make_release(exec_fn, push_fn, push="always")

    release.run()

    push_fn.assert_not_called()
    assert "imageName is required to push images" in capsys.readouterr().err


def test_unexpected_push_value(exec_fn, push_fn):
    release, _ = make_release(exec_fn, push_fn, imageName="ghcr.io/o/i", push="sometimes")

    with pytest.raises(ConfigurationError, match="Unexpected push value"):
        release.run()


def test_post_discards_state(exec_fn, push_fn):
    release, _ = make_release(
        exec_fn,
        push_fn,
        state={"hasRunMain": "true", "mergeTag": "linux-amd64"},
        imageName="ghcr.io/o/i",
    )

    release.run()

    assert release.store.values == {}


def test_post_discards_state_on_failure(exec_fn, push_fn):
    exec_fn.return_value = ExecResult(1, "", "denied")
    release, _ = make_release(
        exec_fn,
        push_fn,
        state={"hasRunMain": "true", "mergeTag": "linux-amd64"},
        imageName="ghcr.io/o/i",
    )

    with pytest.raises(ManifestError):
        release.run()

    assert release.store.values == {}
