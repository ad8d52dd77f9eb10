"""Workflow input loading and validation.

Inputs arrive the way the GitHub Actions runtime passes them to an action:
one ``INPUT_<NAME>`` environment variable per input, the name upper-cased
with dashes kept. Everything is validated here, before any AWS or GitHub
call is made, and resolved into a single :class:`~ec2_runner.spec.Batch`.

The ``matrix`` input selects the batch shape:

* absent: a single unit with identity ``""``;
* a JSON array of strings, or one identity per line: every identity gets
  the same launch inputs;
* a JSON object: identity -> per-unit descriptor. For ``launch`` a
  descriptor holds input overrides (``{"instance-type": "c7g.large"}``);
  for ``terminate`` it is ``{"instance-id": ..., "label": ...}``, which is
  exactly what ``launch`` writes to its ``matrix`` output.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .constants import GITHUB_API_URL, GITHUB_SERVER_URL, Action
from .errors import ConfigError
from .observability.logging import LOG_LEVELS, LogLevel
from .spec import Batch, ImageCriteria, LaunchSpec, TerminateSpec, UnitSpec

type Environ = Mapping[str, str]


# =============================================================================
# Raw input access
# =============================================================================


def input_env_name(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(env: Environ, name: str, *, required: bool = False) -> str:
    value = env.get(input_env_name(name), "").strip()
    if required and not value:
        raise ConfigError(f"Input required and not supplied: {name}")
    return value


def split_lines(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    match value:
        case None:
            return []
        case str():
            return [line.strip() for line in value.splitlines() if line.strip()]
        case _:
            return [str(v).strip() for v in value if str(v).strip()]


def parse_pairs(lines: list[str], what: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for line in lines:
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ValueError(f'{what} must be "name=value", got {line!r}')
        pairs.append((key.strip(), value.strip()))
    return pairs


# =============================================================================
# Validated models
# =============================================================================

LAUNCH_INPUTS: tuple[str, ...] = (
    "runner-user",
    "runner-directory",
    "instance-type",
    "subnet-id",
    "security-group-ids",
    "tags",
    "ami-name",
    "ami-owner",
    "ami-filters",
)


class LaunchInputs(BaseModel):
    """Launch inputs for one unit."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    runner_user: str = Field(alias="runner-user", min_length=1)
    runner_directory: str = Field(alias="runner-directory", min_length=1)
    instance_type: str = Field(alias="instance-type", min_length=1)
    subnet_id: str = Field(alias="subnet-id", min_length=1)
    security_group_ids: list[str] = Field(default_factory=list, alias="security-group-ids")
    tags: list[tuple[str, str]] = Field(default_factory=list)
    ami_name: str | None = Field(default=None, alias="ami-name")
    ami_owner: list[str] = Field(default_factory=list, alias="ami-owner")
    ami_filters: list[tuple[str, str]] = Field(default_factory=list, alias="ami-filters")

    @field_validator("security_group_ids", "ami_owner", mode="before")
    @classmethod
    def _lines(cls, value: Any) -> list[str]:
        return split_lines(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[tuple[str, str]]:
        return parse_pairs(split_lines(value), "Tag")

    @field_validator("ami_filters", mode="before")
    @classmethod
    def _filters(cls, value: Any) -> list[tuple[str, str]]:
        return parse_pairs(split_lines(value), "AMI filter")

    @field_validator("ami_name", mode="before")
    @classmethod
    def _pattern(cls, value: Any) -> str | None:
        if value is None or not str(value).strip():
            return None
        pattern = str(value).strip()
        try:
            re.compile(pattern)
        except re.error as e:
            raise ValueError(f"Invalid ami-name pattern {pattern!r}: {e}") from e
        return pattern

    @model_validator(mode="after")
    def _require_image_criterion(self) -> Self:
        if not self.ami_name and not self.ami_owner and not self.ami_filters:
            raise ValueError(
                'At least one of "ami-name", "ami-owner", or "ami-filters" must be specified'
            )
        return self

    def to_spec(self, unit: str) -> LaunchSpec:
        return LaunchSpec(
            unit=unit,
            runner_user=self.runner_user,
            runner_directory=self.runner_directory,
            instance_type=self.instance_type,
            subnet_id=self.subnet_id,
            security_group_ids=tuple(self.security_group_ids),
            tags=tuple(self.tags),
            image=ImageCriteria(
                name=re.compile(self.ami_name) if self.ami_name else None,
                owners=tuple(self.ami_owner),
                filters=tuple(self.ami_filters),
            ),
        )


class TerminateInputs(BaseModel):
    """Terminate inputs for one unit; also the shape of a launch matrix entry."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    instance_id: str = Field(alias="instance-id", min_length=1)
    label: str = Field(min_length=1)

    def to_spec(self, unit: str) -> TerminateSpec:
        return TerminateSpec(unit=unit, instance_id=self.instance_id, label=self.label)


def _validate[M: BaseModel](model: type[M], data: Mapping[str, Any], unit: str) -> M:
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        where = f" for unit {unit!r}" if unit else ""
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'inputs'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid {model.__name__}{where}: {problems}") from e


# =============================================================================
# Batch shape
# =============================================================================


@dataclass(frozen=True, slots=True)
class SingleUnit:
    pass


@dataclass(frozen=True, slots=True)
class BatchByIdentifiers:
    units: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class BatchByDescriptors:
    units: dict[str, Any]


type BatchShape = SingleUnit | BatchByIdentifiers | BatchByDescriptors


def _check_identity(unit: Any) -> str:
    if not isinstance(unit, str) or not unit.strip():
        raise ConfigError(f"Matrix unit identities must be non-empty strings, got {unit!r}")
    return unit.strip()


def parse_matrix(raw: str) -> BatchShape:
    text = raw.strip()
    if not text:
        return SingleUnit()

    if text[0] in "[{":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Input matrix is not valid JSON: {e}") from e
    else:
        data = split_lines(text)

    match data:
        case dict():
            if not data:
                raise ConfigError("Input matrix is empty")
            units = {_check_identity(k): v for k, v in data.items()}
            if len(units) != len(data):
                raise ConfigError("Input matrix has duplicate unit identities")
            return BatchByDescriptors(units)
        case list():
            if not data:
                raise ConfigError("Input matrix is empty")
            ids = tuple(_check_identity(u) for u in data)
            if len(set(ids)) != len(ids):
                raise ConfigError("Input matrix has duplicate unit identities")
            return BatchByIdentifiers(ids)
        case _:
            raise ConfigError("Input matrix must be a JSON object, a JSON array, or a list of lines")


# =============================================================================
# Settings + batch resolution
# =============================================================================


@dataclass(frozen=True, slots=True)
class Settings:
    action: Action
    github_token: str
    repository: str
    api_url: str = GITHUB_API_URL
    server_url: str = GITHUB_SERVER_URL
    region: str | None = None
    log_level: LogLevel = "INFO"


def load_settings(env: Environ) -> Settings:
    raw_action = get_input(env, "action", required=True)
    try:
        action = Action(raw_action)
    except ValueError:
        raise ConfigError(f'Invalid action "{raw_action}"') from None

    repository = env.get("GITHUB_REPOSITORY", "").strip()
    if not repository or "/" not in repository:
        raise ConfigError("GITHUB_REPOSITORY must be set to 'owner/repo'")

    log_level = (get_input(env, "log-level") or "INFO").upper()
    if env.get("RUNNER_DEBUG") == "1":
        log_level = "DEBUG"
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"Invalid log-level {log_level!r}; expected one of {LOG_LEVELS}")

    return Settings(
        action=action,
        github_token=get_input(env, "github-token", required=True),
        repository=repository,
        api_url=env.get("GITHUB_API_URL") or GITHUB_API_URL,
        server_url=env.get("GITHUB_SERVER_URL") or GITHUB_SERVER_URL,
        region=get_input(env, "aws-region") or None,
        log_level=log_level,  # type: ignore[arg-type]
    )


def _launch_inputs(env: Environ) -> dict[str, str]:
    return {name: value for name in LAUNCH_INPUTS if (value := get_input(env, name))}


def _launch_unit(base: dict[str, Any], overrides: Any, unit: str) -> UnitSpec:
    if not isinstance(overrides, dict):
        raise ConfigError(f"Matrix entry for unit {unit!r} must be an object of inputs")
    return _validate(LaunchInputs, {**base, **overrides}, unit).to_spec(unit)


def build_batch(action: Action, shape: BatchShape, env: Environ) -> Batch:
    units: list[UnitSpec]
    match action, shape:
        case Action.LAUNCH, SingleUnit():
            units = [_validate(LaunchInputs, _launch_inputs(env), "").to_spec("")]
        case Action.LAUNCH, BatchByIdentifiers(ids):
            inputs = _validate(LaunchInputs, _launch_inputs(env), "")
            units = [inputs.to_spec(unit) for unit in ids]
        case Action.LAUNCH, BatchByDescriptors(descriptors):
            base = _launch_inputs(env)
            units = [_launch_unit(base, d, unit) for unit, d in descriptors.items()]
        case Action.TERMINATE, SingleUnit():
            data = {
                "instance-id": get_input(env, "instance-id", required=True),
                "label": get_input(env, "label", required=True),
            }
            units = [_validate(TerminateInputs, data, "").to_spec("")]
        case Action.TERMINATE, BatchByIdentifiers():
            raise ConfigError(
                "Terminate matrix must map each unit to its instance-id and label"
            )
        case Action.TERMINATE, BatchByDescriptors(descriptors):
            units = []
            for unit, d in descriptors.items():
                if not isinstance(d, dict):
                    raise ConfigError(f"Matrix entry for unit {unit!r} must be an object")
                units.append(_validate(TerminateInputs, d, unit).to_spec(unit))
        case _:
            raise ConfigError(f"Unsupported action {action!r}")

    return Batch(action=action, units=tuple(units), is_batch=not isinstance(shape, SingleUnit))


def load_batch(env: Environ, action: Action | None = None) -> Batch:
    """Read and validate the unit configurations for this invocation."""
    action = action or load_settings(env).action
    shape = parse_matrix(get_input(env, "matrix"))
    return build_batch(action, shape, env)
