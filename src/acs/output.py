"""Text and JSON rendering of records for the CLI.

The registry returns plain records; everything about presentation lives here.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Literal

import typer

from acs.state.records import Environment, Project, Record, Run, RuntimeInstance

DetailLevel = Literal["concise", "standard", "full"]

_DETAIL_LEVELS: tuple[str, ...] = ("concise", "standard", "full")


def resolve_detail_level(value: str | None) -> DetailLevel:
    if not value:
        return "concise"
    normalized = value.lower()
    if normalized not in _DETAIL_LEVELS:
        raise typer.BadParameter(
            f'Invalid detail level "{value}". Expected one of: concise, standard, full.'
        )
    return normalized  # type: ignore[return-value]


def _jsonable(data: Any) -> Any:
    if isinstance(data, Record):
        return data.to_dict()
    if isinstance(data, dict):
        return {k: _jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [_jsonable(v) for v in data]
    return data


def emit_output(
    data: Any,
    render: Callable[[Any, DetailLevel], list[str]],
    *,
    json_output: bool = False,
    detail: DetailLevel = "concise",
) -> None:
    if json_output:
        typer.echo(json.dumps(_jsonable(data), indent=2, ensure_ascii=False))
        return
    for line in render(data, detail):
        typer.echo(line)


def bool_label(value: bool) -> str:
    return "yes" if value else "no"


# ── Renderers ─────────────────────────────────────────────


def render_environment_line(record: Environment, detail: DetailLevel) -> str:
    if detail == "concise":
        return f"{record.name} target={record.default_target}"
    return (
        f"{record.name} target={record.default_target} "
        f"project={record.default_project_id} created={record.created_at}"
    )


def render_environment(record: Environment, detail: DetailLevel) -> list[str]:
    lines = [
        record.name,
        f"Default target: {record.default_target}",
        f"Default project: {record.default_project_id}",
    ]
    if detail != "concise":
        policy = record.resource_policy
        lines.append(
            f"Resource policy: cpu<={policy.max_cpu_percent}% mem<={policy.max_memory_percent}%"
        )
    profile = record.machine_profile
    if detail == "full" and profile is not None:
        lines.append(f"Machine profile: {profile.hostname} {profile.platform}/{profile.arch}")
        lines.append(
            f"Machine capacity: cpu={profile.cpu_count} totalMem={profile.total_memory_bytes}"
        )
    return lines


def render_project_line(project: Project, detail: DetailLevel) -> str:
    if detail == "concise":
        return f"- {project.id} ({project.name})"
    return (
        f"- {project.id} ({project.name}) runtimes={project.runtime_count} "
        f"updated={project.updated_at}"
    )


def render_instance_line(instance: RuntimeInstance, detail: DetailLevel) -> str:
    base = f"{instance.name} status={instance.status} target={instance.target}"
    if detail == "concise":
        return base
    if detail == "standard":
        return f"{base} runs={instance.run_count} updated={instance.updated_at}"
    return (
        f"{instance.name} ({instance.id}) status={instance.status} target={instance.target} "
        f"source={instance.source.url} runs={instance.run_count} "
        f"lastRun={instance.last_run_at or 'never'}"
    )


def render_instance(instance: RuntimeInstance, detail: DetailLevel) -> list[str]:
    lines = [
        f"{instance.name} ({instance.id})",
        f"Status: {instance.status} target={instance.target}",
    ]
    if detail != "concise":
        lines.append(f"Source: {instance.source.url}")
        lines.append(f"Runs: {instance.run_count}")
    if detail == "full":
        lines.append(f"Created: {instance.created_at}")
        lines.append(f"Updated: {instance.updated_at}")
        lines.append(f"Last run: {instance.last_run_at or 'never'}")
    return lines


def render_run_line(run: Run, detail: DetailLevel) -> str:
    base = f"{run.id} instance={run.instance_name} status={run.status}"
    if detail == "concise":
        return base
    if detail == "standard":
        return f"{base} started={run.started_at}"
    duration = run.duration_ms if run.duration_ms is not None else "n/a"
    return (
        f"{base} target={run.target} dryRun={bool_label(run.dry_run)} "
        f"durationMs={duration} source={run.source_url}"
    )


def render_run(run: Run, detail: DetailLevel) -> list[str]:
    lines = [
        f"{run.id} instance={run.instance_name}",
        f"Status: {run.status} dryRun={bool_label(run.dry_run)}",
    ]
    if detail != "concise":
        lines.append(f"Started: {run.started_at}")
        lines.append(f"Ended: {run.ended_at or 'n/a'}")
        lines.append(f"Duration ms: {run.duration_ms if run.duration_ms is not None else 'n/a'}")
    if detail == "full":
        lines.append(f"Environment: {run.environment}")
        lines.append(f"Project: {run.project_id}")
        lines.append(f"Target: {run.target}")
        lines.append(f"Source: {run.source_url}")
        lines.append(f"Message: {run.message or ''}")
    return lines
