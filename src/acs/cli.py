"""Typer command line for ``acs``.

Commands resolve a scope, call the registry and hand plain records to
``acs.output``. Registry errors become a one-line message on stderr and exit
code 1.
"""

from __future__ import annotations

import asyncio
import getpass
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import typer

from acs import __version__
from acs.config import ACSConfig, load_config
from acs.errors import (
    ACSError,
    InstanceNotFoundError,
    InvalidEnvironmentError,
    RunNotFoundError,
)
from acs.output import (
    DetailLevel,
    emit_output,
    render_environment,
    render_environment_line,
    render_instance,
    render_instance_line,
    render_project_line,
    render_run,
    render_run_line,
    resolve_detail_level,
)
from acs.runtime.runner import run_instance
from acs.state.instances import create_instance, find_instance_by_name, list_instances
from acs.state.layout import ENVIRONMENTS, get_state_layout
from acs.state.records import DEFAULT_PROJECT_ID
from acs.state.runs import find_run_by_id, list_runs
from acs.state.scope import (
    create_project,
    list_environments,
    list_projects,
    read_context,
    read_environment,
    read_manifest,
    read_organization,
    resolve_scope,
    set_context,
    validate_environment,
)
from acs.state.tenancy import initialize_state

logger = logging.getLogger(__name__)


def _env_callback(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return validate_environment(value)
    except InvalidEnvironmentError as e:
        raise typer.BadParameter(str(e)) from None


def _detail_callback(value: str | None) -> str:
    return resolve_detail_level(value)


HOME_OPTION = typer.Option(
    None, "--home", help="Override ACS home path (default: $ACS_HOME or ~/.acs)."
)
ENV_OPTION = typer.Option(
    None,
    "--env",
    help="Override environment context: development | production.",
    callback=_env_callback,
)
PROJECT_OPTION = typer.Option(
    None, "--project", help="Override project context (default comes from current context)."
)
JSON_OPTION = typer.Option(False, "--json", help="Emit JSON instead of text.")
DETAIL_OPTION = typer.Option(
    "concise", "--detail", help="Text detail: concise | standard | full.", callback=_detail_callback
)


@dataclass
class CLIState:
    config: ACSConfig

    def home(self, override: str | None) -> str | Path | None:
        return override or self.config.home


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@contextmanager
def _command_errors(action: str) -> Iterator[None]:
    try:
        yield
    except ACSError as e:
        logger.debug("%s failed", action, exc_info=True)
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1) from None


def _state(ctx: typer.Context) -> CLIState:
    return ctx.obj


app = typer.Typer(
    help="Run agent harness runtimes in Docker and swarm modes.",
    no_args_is_help=True,
    add_completion=False,
)
org_app = typer.Typer(help="Inspect the organization identity.", no_args_is_help=True)
context_app = typer.Typer(help="Show or change the current context.", no_args_is_help=True)
env_app = typer.Typer(help="Inspect environments.", no_args_is_help=True)
project_app = typer.Typer(help="Manage projects.", no_args_is_help=True)
instance_app = typer.Typer(help="Inspect runtime instances.", no_args_is_help=True)
runs_app = typer.Typer(help="Inspect run history.", no_args_is_help=True)

app.add_typer(org_app, name="org")
app.add_typer(context_app, name="context")
app.add_typer(env_app, name="env")
app.add_typer(project_app, name="project")
app.add_typer(instance_app, name="instance")
app.add_typer(runs_app, name="runs")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to acs.toml (default: ./acs.toml if present)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
) -> None:
    with _command_errors("load config"):
        loaded = load_config(config)
    _setup_logging("DEBUG" if verbose else loaded.log_level)
    ctx.obj = CLIState(config=loaded)


# ── Lifecycle commands ────────────────────────────────────


@app.command()
def init(
    ctx: typer.Context,
    org: str | None = typer.Option(None, "--org", "-o", help="Organization name."),
    home: str | None = HOME_OPTION,
    force: bool = typer.Option(
        False, "--force", help="Reset and recreate existing ACS home state if already initialized."
    ),
) -> None:
    """Initialize the tenancy root, organization credentials and environments."""
    org_name = (org or "").strip() or getpass.getuser()
    with _command_errors("init"):
        result = initialize_state(org_name, _state(ctx).home(home), force=force)

    action = "reinitialized" if result.overwritten else "initialized"
    typer.echo(f"ACS {action} at {result.root}")
    typer.echo(f"Organization: {result.organization.name}")
    typer.echo(f"Organization ID: {result.organization.id}")
    typer.echo(f"Key ID: {result.organization.key_id}")
    typer.echo(f"Current context: production/{DEFAULT_PROJECT_ID}")
    typer.echo(f"Generated API key (stored in auth/credentials.json): {result.api_key}")


def _is_likely_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def split_create_inputs(
    inputs: list[str], explicit_name: str | None = None
) -> tuple[list[str], str | None]:
    """Separate harness sources from a trailing positional name.

    ``acs create <url> my-name`` treats the last argument as a name when every
    other argument looks like a URL and it does not. This is a heuristic.
    """
    if not inputs or explicit_name:
        return list(inputs), explicit_name
    if len(inputs) >= 2:
        maybe_name, maybe_sources = inputs[-1], inputs[:-1]
        if all(_is_likely_url(s) for s in maybe_sources) and not _is_likely_url(maybe_name):
            if len(maybe_sources) == 1:
                return maybe_sources, maybe_name
            raise typer.BadParameter(
                "Ambiguous create input: explicit names are only supported "
                "for single harness creation."
            )
    return list(inputs), None


@app.command()
def create(
    ctx: typer.Context,
    harness: list[str] = typer.Argument(..., help="GitHub harness URL(s)."),
    name: str | None = typer.Option(None, "--name", "-n", help="Explicit name (single harness only)."),
    env: str | None = ENV_OPTION,
    project: str | None = PROJECT_OPTION,
    home: str | None = HOME_OPTION,
) -> None:
    """Create runtime instance record(s) from harness source links."""
    sources, explicit_name = split_create_inputs(harness, name)
    if explicit_name and len(sources) > 1:
        raise typer.BadParameter("--name can only be used when creating a single harness.")

    target = "swarm" if len(sources) > 1 else "docker"
    with _command_errors("create"):
        scope = resolve_scope(_state(ctx).home(home), env, project)
        created = [
            create_instance(
                scope, source, name=explicit_name if index == 0 else None, target=target
            )
            for index, source in enumerate(sources)
        ]

    typer.echo(f"Created {len(created)} runtime instance(s) in {scope.label}")
    for instance in created:
        typer.echo(
            f"- {instance.name} ({instance.id}) target={instance.target} "
            f"source={instance.source.url}"
        )


@app.command()
def run(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Runtime instance name."),
    env: str | None = ENV_OPTION,
    project: str | None = PROJECT_OPTION,
    home: str | None = HOME_OPTION,
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate and simulate the run without changing runtime state."
    ),
    json_output: bool = JSON_OPTION,
) -> None:
    """Run an existing runtime instance under the current or overridden context."""
    state = _state(ctx)
    with _command_errors("run"):
        outcome = asyncio.run(
            run_instance(
                name,
                state.config,
                root=state.home(home),
                environment=env,
                project_id=project,
                dry_run=dry_run,
            )
        )

    if json_output:
        emit_output(
            {"instance": outcome.instance, "run": outcome.run, "command": outcome.command},
            lambda data, detail: [],
            json_output=True,
        )
    elif outcome.succeeded:
        verb = "ready to run (dry-run)" if dry_run else "running"
        typer.echo(f'Runtime "{outcome.instance.name}" in {outcome.scope.label} is {verb}.')
        typer.echo(f"Command: {outcome.command}")
        typer.echo(f"Run: {outcome.run.id} status={outcome.run.status}")

    if not outcome.succeeded:
        typer.echo(outcome.error, err=True)
        raise typer.Exit(code=1)


@app.command()
def status(
    ctx: typer.Context,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Summarize the organization, current context and instances."""
    root = _state(ctx).home(home)
    with _command_errors("status"):
        context = read_context(root)
        manifest = read_manifest(root)
        organization = read_organization(root)
        scope = resolve_scope(root, context.environment, context.project_id)
        environments = list_environments(root)
        instances = [record for _, record in list_instances(scope)]
        runs = [record for _, record in list_runs(scope)]

    payload = {
        "organization": {
            "id": organization.id,
            "name": organization.name,
            "keyId": organization.key_id,
        },
        "manifest": {
            "schemaVersion": manifest.schema_version,
            "initializedAt": manifest.initialized_at,
        },
        "context": context,
        "environmentCount": len(environments),
        "currentProject": {
            "id": scope.project.id,
            "name": scope.project.name,
            "runtimeCount": scope.project.runtime_count,
        },
        "instances": {
            "total": len(instances),
            "running": sum(1 for i in instances if i.status == "running"),
        },
        "recentRun": runs[0] if runs else None,
    }

    def render(data: dict, level: DetailLevel) -> list[str]:
        lines = [
            f"Organization: {organization.name} ({organization.id})",
            f"Context: {context.environment}/{context.project_id}",
            f"Instances: {data['instances']['total']} total, "
            f"{data['instances']['running']} running",
        ]
        if level != "concise":
            lines.append(f"Schema: v{manifest.schema_version}")
            lines.append(f"Initialized: {manifest.initialized_at}")
            lines.append(f"Key ID: {organization.key_id}")
        recent = data["recentRun"]
        if level == "full" and recent is not None:
            lines.append(f"Recent run: {recent.id} ({recent.instance_name}) status={recent.status}")
        return lines

    emit_output(payload, render, json_output=json_output, detail=detail)


# ── org / context / env ───────────────────────────────────


@org_app.command("show")
def org_show(
    ctx: typer.Context,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Show the organization identity (never the API key)."""
    root = _state(ctx).home(home)
    with _command_errors("org show"):
        manifest = read_manifest(root)
        organization = read_organization(root)

    payload = {
        "id": organization.id,
        "name": organization.name,
        "keyId": organization.key_id,
        "initializedAt": manifest.initialized_at,
        "schemaVersion": manifest.schema_version,
        "homePath": str(get_state_layout(root).root),
    }

    def render(data: dict, level: DetailLevel) -> list[str]:
        lines = [f"{data['name']} ({data['id']})"]
        if level != "concise":
            lines.append(f"Key ID: {data['keyId']}")
            lines.append(f"Home: {data['homePath']}")
        if level == "full":
            lines.append(f"Schema version: {data['schemaVersion']}")
            lines.append(f"Initialized at: {data['initializedAt']}")
        return lines

    emit_output(payload, render, json_output=json_output, detail=detail)


@context_app.command("show")
def context_show(
    ctx: typer.Context,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Show the current context."""
    with _command_errors("context show"):
        context = read_context(_state(ctx).home(home))

    def render(data, level: DetailLevel) -> list[str]:
        lines = [f"{data.environment}/{data.project_id}"]
        if level != "concise":
            lines.append(f"Updated: {data.updated_at}")
        return lines

    emit_output(context, render, json_output=json_output, detail=detail)


@context_app.command("set")
def context_set(
    ctx: typer.Context,
    env: str = typer.Option(..., "--env", help="development | production.", callback=_env_callback),
    project: str = typer.Option(..., "--project", help="Project id."),
    home: str | None = HOME_OPTION,
) -> None:
    """Point the current context at an existing environment/project."""
    with _command_errors("context set"):
        context = set_context(_state(ctx).home(home), env, project)
    typer.echo(f"Current context set to {context.environment}/{context.project_id}")


@env_app.command("list")
def env_list(
    ctx: typer.Context,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """List both environments."""
    with _command_errors("env list"):
        environments = list_environments(_state(ctx).home(home))
    emit_output(
        environments,
        lambda data, level: [render_environment_line(e, level) for e in data],
        json_output=json_output,
        detail=detail,
    )


@env_app.command("show")
def env_show(
    ctx: typer.Context,
    environment: str = typer.Argument(..., help="development | production.", callback=_env_callback),
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Show one environment, including its resource policy."""
    with _command_errors("env show"):
        record = read_environment(environment, _state(ctx).home(home))
    emit_output(record, render_environment, json_output=json_output, detail=detail)


# ── project ───────────────────────────────────────────────


@project_app.command("list")
def project_list(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """List projects, grouped by environment."""
    root = _state(ctx).home(home)
    with _command_errors("project list"):
        grouped = {e: list_projects(e, root) if env in (None, e) else [] for e in ENVIRONMENTS}

    def render(data: dict, level: DetailLevel) -> list[str]:
        lines: list[str] = []
        for name, projects in data.items():
            if not projects:
                continue
            lines.append(f"[{name}]")
            lines.extend(render_project_line(p, level) for p in projects)
        return lines or ["No projects found."]

    emit_output(grouped, render, json_output=json_output, detail=detail)


@project_app.command("show")
def project_show(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project id."),
    env: str | None = ENV_OPTION,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Show one project with live instance counts."""
    root = _state(ctx).home(home)
    with _command_errors("project show"):
        context = read_context(root)
        scope = resolve_scope(root, env or context.environment, project_id)
        instances = [record for _, record in list_instances(scope)]

    payload = {
        **scope.project.to_dict(),
        "activeContext": f"{context.environment}/{context.project_id}",
        "runtimeCount": len(instances),
        "runningCount": sum(1 for i in instances if i.status == "running"),
    }

    def render(data: dict, level: DetailLevel) -> list[str]:
        lines = [
            f"{data['id']} ({data['name']}) [{data['environment']}]",
            f"Runtimes: {data['runtimeCount']} total, {data['runningCount']} running",
        ]
        if level != "concise":
            lines.append(f"Created: {data['createdAt']}")
            lines.append(f"Updated: {data['updatedAt']}")
        if level == "full":
            lines.append(f"Active context: {data['activeContext']}")
        return lines

    emit_output(payload, render, json_output=json_output, detail=detail)


@project_app.command("use")
def project_use(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project id."),
    env: str | None = ENV_OPTION,
    home: str | None = HOME_OPTION,
) -> None:
    """Make a project the current context."""
    root = _state(ctx).home(home)
    with _command_errors("project use"):
        environment = env or read_context(root).environment
        context = set_context(root, environment, project_id)
    typer.echo(f"Current context set to {context.environment}/{context.project_id}")


@project_app.command("create")
def project_create(
    ctx: typer.Context,
    project_id: str = typer.Argument(..., help="Project id."),
    name: str | None = typer.Option(None, "--name", help="Display name (default: the id)."),
    env: str | None = ENV_OPTION,
    home: str | None = HOME_OPTION,
) -> None:
    """Create a project in an environment (default: the current one)."""
    root = _state(ctx).home(home)
    with _command_errors("project create"):
        environment = env or read_context(root).environment
        project = create_project(root, environment, project_id, name or project_id)
    typer.echo(f"Created project {project.environment}/{project.id} ({project.name})")


# ── instance / runs ───────────────────────────────────────


@instance_app.command("list")
def instance_list(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    project: str | None = PROJECT_OPTION,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """List runtime instances in scope, by name."""
    with _command_errors("instance list"):
        scope = resolve_scope(_state(ctx).home(home), env, project)
        instances = [record for _, record in list_instances(scope)]

    def render(data: dict, level: DetailLevel) -> list[str]:
        lines = [f"Using context: {data['context']}"]
        if not data["instances"]:
            return lines + ["No instances found."]
        return lines + [render_instance_line(i, level) for i in data["instances"]]

    emit_output(
        {"context": scope.label, "instances": instances},
        render,
        json_output=json_output,
        detail=detail,
    )


@instance_app.command("show")
def instance_show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Runtime instance name."),
    env: str | None = ENV_OPTION,
    project: str | None = PROJECT_OPTION,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Show one runtime instance."""
    with _command_errors("instance show"):
        scope = resolve_scope(_state(ctx).home(home), env, project)
        found = find_instance_by_name(scope, name)
        if found is None:
            raise InstanceNotFoundError(name, scope.label)
    emit_output(found[1], render_instance, json_output=json_output, detail=detail)


@runs_app.command("list")
def runs_list(
    ctx: typer.Context,
    env: str | None = ENV_OPTION,
    project: str | None = PROJECT_OPTION,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """List run records in scope, most recent first."""
    with _command_errors("runs list"):
        scope = resolve_scope(_state(ctx).home(home), env, project)
        runs = [record for _, record in list_runs(scope)]

    def render(data: dict, level: DetailLevel) -> list[str]:
        lines = [f"Using context: {data['context']}"]
        if not data["runs"]:
            return lines + ["No run records found."]
        return lines + [render_run_line(r, level) for r in data["runs"]]

    emit_output(
        {"context": scope.label, "runs": runs}, render, json_output=json_output, detail=detail
    )


@runs_app.command("show")
def runs_show(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run id."),
    env: str | None = ENV_OPTION,
    project: str | None = PROJECT_OPTION,
    home: str | None = HOME_OPTION,
    json_output: bool = JSON_OPTION,
    detail: str = DETAIL_OPTION,
) -> None:
    """Show one run record."""
    with _command_errors("runs show"):
        scope = resolve_scope(_state(ctx).home(home), env, project)
        found = find_run_by_id(scope, run_id)
        if found is None:
            raise RunNotFoundError(run_id, scope.label)
    emit_output(found[1], render_run, json_output=json_output, detail=detail)


def main() -> None:
    app()
