import yaml
from click.testing import CliRunner

from devcontainer_ci.builders.devcontainer import Outcome
from devcontainer_ci.cli import cli
from devcontainer_ci.errors import CollaboratorFailure


def write_inputs(tmp_path, **inputs):
    inputs_path = tmp_path / "inputs.yaml"
    with open(inputs_path, "w") as f:
        yaml.dump(inputs, f)
    return inputs_path


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ["main", "--help"])
    assert result.exit_code == 0
    assert "Builds the dev container and runs runCmd inside it" in result.output


def test_cli_main_then_post_merge(tmp_path, mocker):
    runner = CliRunner()
    inputs_path = write_inputs(
        tmp_path, imageName="ghcr.io/o/i", imageTag="v1,latest", mergeTag="linux-amd64,linux-arm64"
    )
    state_path = tmp_path / "state.yaml"
    mock_manifest = mocker.patch("devcontainer_ci.release.create_manifest")

    result = runner.invoke(cli, ["run", "--inputs", str(inputs_path), "--state-file", str(state_path)])
    assert result.exit_code == 0, result.output
    assert "skipping build" in result.output
    mock_manifest.assert_not_called()

    result = runner.invoke(cli, ["run", "--inputs", str(inputs_path), "--state-file", str(state_path)])
    assert result.exit_code == 0, result.output
    assert mock_manifest.call_count == 2
    assert [c.args[1:] for c in mock_manifest.call_args_list] == [
        ("ghcr.io/o/i", "v1", ["linux-amd64", "linux-arm64"]),
        ("ghcr.io/o/i", "latest", ["linux-amd64", "linux-arm64"]),
    ]


def test_cli_failure_exit_code(tmp_path, mocker):
    runner = CliRunner()
    inputs_path = write_inputs(tmp_path, imageName="ghcr.io/o/i")
    mocker.patch(
        "devcontainer_ci.cli.ReleaseOrchestrator.run",
        side_effect=CollaboratorFailure("push failed for ghcr.io/o/i:latest", description="denied"),
    )

    result = runner.invoke(
        cli, ["post", "--inputs", str(inputs_path), "--state-file", str(tmp_path / "state.yaml")]
    )

    assert result.exit_code == 1
    assert "::error::push failed for ghcr.io/o/i:latest" in result.output


def test_cli_configuration_error(tmp_path):
    runner = CliRunner()
    inputs_path = write_inputs(tmp_path, imageName="ghcr.io/o/i", push="sometimes")

    result = runner.invoke(
        cli, ["post", "--inputs", str(inputs_path), "--state-file", str(tmp_path / "state.yaml")]
    )

    assert result.exit_code == 1
    assert "Unexpected push value ('sometimes')" in result.output


def mock_build_tools(mocker):
    mocker.patch("devcontainer_ci.orchestrator.is_buildx_installed", return_value=True)
    devcontainer = mocker.patch("devcontainer_ci.orchestrator.DevContainerCli").return_value
    devcontainer.is_cli_installed.return_value = True
    devcontainer.build.return_value = Outcome(outcome="success")
    devcontainer.up.return_value = Outcome(outcome="success")
    devcontainer.exec.return_value = 0
    return devcontainer


def test_cli_merge_tag_does_not_leak_into_next_run(tmp_path, mocker):
    runner = CliRunner()
    devcontainer = mock_build_tools(mocker)
    mock_manifest = mocker.patch("devcontainer_ci.release.create_manifest")
    merge_inputs = write_inputs(tmp_path, imageName="ghcr.io/o/i", mergeTag="linux-amd64")
    plain_path = tmp_path / "plain"
    plain_path.mkdir()
    plain_inputs = write_inputs(plain_path, imageName="ghcr.io/o/i", push="never")
    state_path = tmp_path / "state.yaml"
    state_args = ["--state-file", str(state_path)]

    result = runner.invoke(cli, ["main", "--inputs", str(merge_inputs), *state_args])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["main", "--inputs", str(plain_inputs), *state_args])
    assert result.exit_code == 0, result.output
    devcontainer.build.assert_called_once()

    result = runner.invoke(cli, ["post", "--inputs", str(plain_inputs), *state_args])
    assert result.exit_code == 0, result.output
    assert "Image push skipped because 'push' is set to 'never'" in result.output
    mock_manifest.assert_not_called()
    assert not state_path.exists()

    # With the state discarded, the next run starts over in the main phase.
    result = runner.invoke(cli, ["run", "--inputs", str(plain_inputs), *state_args])
    assert result.exit_code == 0, result.output
    assert devcontainer.build.call_count == 2


def test_cli_main_without_github_state(mocker):
    runner = CliRunner()
    mock_build_tools(mocker)

    result = runner.invoke(cli, ["main"], env={"GITHUB_STATE": None})

    assert result.exit_code == 1
    assert "GITHUB_STATE is not set" in result.output


def test_cli_unwritable_output_file(tmp_path, mocker):
    runner = CliRunner()
    mock_build_tools(mocker)
    inputs_path = write_inputs(tmp_path, imageName="ghcr.io/o/i", runCmd="make test")
    output_dir = tmp_path / "output"
    output_dir.mkdir()

    result = runner.invoke(
        cli,
        ["main", "--inputs", str(inputs_path), "--state-file", str(tmp_path / "state.yaml")],
        env={"GITHUB_OUTPUT": str(output_dir)},
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "::error::" in result.output
