"""Output sink for the CI runner: log lines, log groups, step outputs and failure."""

from __future__ import annotations

import os
import uuid
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional

import click


class Workflow:
    """
    Talks to the GitHub Actions runner through workflow commands on stdout.

    Outside of Actions the commands are simply printed, which keeps local runs
    readable.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = os.environ if environ is None else environ
        self.failed_message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.failed_message is not None

    def info(self, message: str) -> None:
        click.echo(message.rstrip("\n"))

    def warning(self, message: str) -> None:
        click.secho(f"::warning::{message}", fg="yellow")

    def error(self, message: str) -> None:
        click.secho(f"::error::{_escape(message)}", fg="red", err=True)

    @contextmanager
    def group(self, title: str) -> Iterator[None]:
        click.echo(f"::group::{title}")
        try:
            yield
        finally:
            click.echo("::endgroup::")

    def set_output(self, name: str, value: str) -> None:
        output_file = self.environ.get("GITHUB_OUTPUT")
        if not output_file:
            click.echo(f"{name}={value}")
            return
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with open(output_file, "a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")

    def set_failed(self, message: str) -> None:
        """Marks the step as failed; the first message wins."""
        self.error(message)
        if self.failed_message is None:
            self.failed_message = message


def _escape(message: str) -> str:
    # Workflow commands are single-line.
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
