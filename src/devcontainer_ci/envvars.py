from __future__ import annotations

import os
from typing import List, Mapping, Optional


def populate_defaults(
    envs: List[str],
    inherit_env: bool,
    environ: Optional[Mapping[str, str]] = None,
) -> List[str]:
    """
    Expands the ``env`` input into ``NAME=value`` entries for the container.

    A bare ``NAME`` takes its value from the runner's environment (and is dropped
    if the runner does not define it). With ``inherit_env`` the whole runner
    environment is passed first so explicit entries override it.
    """
    environ = os.environ if environ is None else environ
    result: List[str] = []
    if inherit_env:
        result += [f"{key}={value}" for key, value in environ.items()]

    for entry in envs:
        if "=" in entry:
            result.append(entry)
        elif entry in environ:
            result.append(f"{entry}={environ[entry]}")
    return result
