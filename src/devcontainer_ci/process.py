"""Thin subprocess wrapper shared by every external tool adapter."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import click


@dataclass(frozen=True)
class ExecResult:
    exit_code: int
    stdout: str
    stderr: str


# (command, args, options) -> ExecResult
ExecFunction = Callable[[str, List[str], Dict], ExecResult]

# Receives each line of output as it is produced.
LineSink = Callable[[str], None]


def exec_command(command: str, args: List[str], options: Optional[Dict] = None) -> ExecResult:
    """
    Runs ``command`` with ``args`` and captures its output.

    Recognised options: ``silent`` (do not echo output), ``cwd`` and ``env``.
    A missing executable is reported as exit code 127 like a shell would.
    """
    options = options or {}
    cmd = [command, *args]
    if not options.get("silent"):
        click.echo(f"Executing: {' '.join(cmd)}")
    try:
        completed = subprocess.run(
            cmd,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            cwd=options.get("cwd"),
            env=options.get("env"),
        )
    except FileNotFoundError as e:
        return ExecResult(exit_code=127, stdout="", stderr=str(e))

    if not options.get("silent"):
        if completed.stdout:
            click.echo(completed.stdout.rstrip("\n"))
        if completed.stderr:
            click.echo(completed.stderr.rstrip("\n"), err=True)
    return ExecResult(completed.returncode, completed.stdout, completed.stderr)


def stream_command(command: str, args: List[str], on_line: LineSink) -> int:
    """
    Runs ``command`` and hands every output line (stderr merged) to ``on_line``.

    Undecodable bytes are replaced rather than aborting the stream. A missing
    executable is reported as exit code 127.
    """
    try:
        proc = subprocess.Popen(
            [command, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as e:
        on_line(f"{e}\n")
        return 127

    with proc:
        for line in proc.stdout:
            on_line(line)
    return proc.returncode
