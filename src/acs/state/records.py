"""Record types persisted under the tenancy root.

Records are plain dataclasses. On disk they are JSON objects with camelCase
keys; optional fields that are ``None`` are left out of the document and
read back as ``None``.
"""

from __future__ import annotations

import uuid
from dataclasses import MISSING, dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, ClassVar, Literal, TypeVar

RuntimeTarget = Literal["docker", "swarm"]
InstanceStatus = Literal["created", "running", "stopped", "error"]
RunStatus = Literal["queued", "running", "completed", "failed"]

SCHEMA_VERSION = 1
DEFAULT_PROJECT_ID = "prj_default"

R = TypeVar("R", bound="Record")


def utc_now() -> str:
    """UTC timestamp with millisecond precision, e.g. 2026-10-18T10:46:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


# annotation -> accepted JSON value types; JSON numbers without a fraction
# decode as int, so float fields take both
_SCALAR_TYPES: dict[str, tuple[type, ...]] = {
    "str": (str,),
    "int": (int,),
    "float": (int, float),
    "bool": (bool,),
}


def _check_scalar(owner: str, key: str, annotation: Any, value: Any) -> None:
    # annotations are strings here ("int", "str | None")
    base = str(annotation).split("|")[0].strip()
    expected = _SCALAR_TYPES.get(base)
    if expected is None:
        return
    # bool is an int subclass
    if (isinstance(value, bool) and bool not in expected) or not isinstance(value, expected):
        raise ValueError(f"{owner} field '{key}' must be {base}, got {type(value).__name__}")


class Record:
    """Mixin giving dataclasses a JSON-document shape."""

    # attribute name -> nested record type
    _nested: ClassVar[dict[str, type[Record]]] = {}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Record):
                value = value.to_dict()
            elif isinstance(value, list):
                value = list(value)
            out[_camel(f.name)] = value
        return out

    @classmethod
    def from_dict(cls: type[R], data: Any) -> R:
        """Build a record from a decoded JSON document.

        Raises ValueError when the document does not have the record's shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object for {cls.__name__}, got {type(data).__name__}")
        kwargs: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            key = _camel(f.name)
            if key not in data or data[key] is None:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise ValueError(f"{cls.__name__} is missing required field '{key}'")
                continue
            value = data[key]
            nested = cls._nested.get(f.name)
            if nested is not None:
                value = nested.from_dict(value)
            else:
                _check_scalar(cls.__name__, key, f.type, value)
            kwargs[f.name] = value
        return cls(**kwargs)


@dataclass
class Manifest(Record):
    schema_version: int
    initialized_at: str
    organization_id: str


@dataclass
class Organization(Record):
    id: str
    name: str
    key_id: str
    created_at: str


@dataclass
class Credential(Record):
    api_key: str
    created_at: str


@dataclass
class MachineProfile(Record):
    captured_at: str
    hostname: str
    platform: str
    arch: str
    release: str
    cpu_count: int
    cpu_model: str
    total_memory_bytes: int
    free_memory_bytes: int
    load_average_1m: float


@dataclass
class ResourcePolicy(Record):
    max_cpu_percent: int
    max_memory_percent: int


@dataclass
class Environment(Record):
    name: str
    created_at: str
    default_target: str
    projects_directory: str
    default_project_id: str
    resource_policy: ResourcePolicy
    machine_profile: MachineProfile | None = None

    _nested: ClassVar[dict[str, type[Record]]] = {
        "resource_policy": ResourcePolicy,
        "machine_profile": MachineProfile,
    }


@dataclass
class Project(Record):
    id: str
    name: str
    environment: str
    created_at: str
    updated_at: str
    runtime_count: int = 0


@dataclass
class CurrentContext(Record):
    environment: str
    project_id: str
    updated_at: str


@dataclass
class InstanceSource(Record):
    type: str
    url: str
    repository: str


@dataclass
class RuntimeInstance(Record):
    id: str
    name: str
    environment: str
    project_id: str
    target: str
    source: InstanceSource
    status: str
    running: bool
    created_at: str
    updated_at: str
    run_count: int = 0
    last_run_at: str | None = None

    _nested: ClassVar[dict[str, type[Record]]] = {"source": InstanceSource}


@dataclass
class Run(Record):
    id: str
    instance_id: str
    instance_name: str
    environment: str
    project_id: str
    target: str
    source_url: str
    status: str
    dry_run: bool
    started_at: str
    ended_at: str | None = None
    duration_ms: int | None = None
    message: str | None = None


@dataclass
class InitResult:
    """Outcome of tenancy initialization. ``api_key`` is shown once and never again."""

    root: Path
    organization: Organization
    api_key: str
    overwritten: bool
