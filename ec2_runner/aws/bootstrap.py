"""User-data script composition.

The instance boots from an AMI that already contains an unpacked GitHub
Actions runner in ``runner_directory``; user data only configures it
against the repository and starts it.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from dataclasses import dataclass

type Op = str | Callable[[], str] | list[Op]
"""Either a literal line, a function returning lines, or a list of ops."""


def resolve(op: Op) -> str:
    match op:
        case str():
            return op
        case list():
            return "\n".join(resolve(o) for o in op)
        case _:
            return op()


def shebang(shell: str = "/bin/sh") -> Op:
    return f"#!{shell}"


def cd(directory: str) -> Op:
    return f"cd {shlex.quote(directory)}"


def as_user(user: str, *argv: str) -> Op:
    return lambda: " ".join(["sudo", "-u", shlex.quote(user), *map(shlex.quote, argv)])


@dataclass(frozen=True, slots=True)
class RunnerBootstrap:
    runner_user: str
    runner_directory: str
    repository_url: str
    label: str
    token: str

    def ops(self) -> list[Op]:
        return [
            shebang(),
            cd(self.runner_directory),
            as_user(
                self.runner_user,
                "./config.sh",
                "--unattended",
                "--url", self.repository_url,
                "--labels", self.label,
                "--token", self.token,
            ),
            as_user(self.runner_user, "./run.sh"),
        ]

    def script(self) -> str:
        return resolve(self.ops()) + "\n"
