"""GitHub Actions output sink.

Outputs are appended to the file named by ``$GITHUB_OUTPUT`` using the
delimiter form, which is safe for any value. Failures are reported with an
``::error::`` workflow command.
"""

from __future__ import annotations

import json
import os
import sys
import uuid
from pathlib import Path
from typing import TextIO

from .constants import Action
from .spec import BatchResult


def _escape_command(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class ActionOutput:
    def __init__(self, path: str | Path | None = None, stream: TextIO | None = None) -> None:
        raw = path if path is not None else os.environ.get("GITHUB_OUTPUT")
        self._path = Path(raw) if raw else None
        self._stream = stream or sys.stdout
        self.outputs: dict[str, str] = {}
        self.failed = False

    def set_output(self, name: str, value: str) -> None:
        self.outputs[name] = value
        if self._path is None:
            self._stream.write(f"{name}={value}\n")
            return
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with self._path.open("a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")

    def fail(self, message: str) -> None:
        self.failed = True
        self._stream.write(f"::error::{_escape_command(message)}\n")
        self._stream.flush()

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def publish(self, result: BatchResult) -> None:
        """Write the outputs for a settled batch and flag it failed if any unit failed."""
        match result.action:
            case Action.LAUNCH:
                self.set_output("matrix", json.dumps(result.matrix, sort_keys=True))
                if not result.is_batch and len(result.launched) == 1:
                    (launched,) = result.launched.values()
                    self.set_output("instance-id", launched.instance_id)
                    self.set_output("label", launched.label)
                if result.failed:
                    self.fail("One or more runners failed to launch")
            case Action.TERMINATE:
                if result.failed:
                    self.fail("One or more runners failed to terminate")
