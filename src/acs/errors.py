"""Error taxonomy for the tenancy registry.

Every error carries a single human-readable message. None of them are
transient: each one names a precondition the caller has to fix.
"""

from __future__ import annotations

from pathlib import Path


class ACSError(Exception):
    """Base class for all registry errors."""


class NotInitializedError(ACSError):
    def __init__(self, root: Path) -> None:
        super().__init__(f"ACS is not initialized at {root}. Run `acs init` first.")
        self.root = root


class AlreadyInitializedError(ACSError):
    def __init__(self, root: Path) -> None:
        super().__init__(
            f"ACS is already initialized at {root}. Re-run with --force to reset."
        )
        self.root = root


class ContextMissingError(ACSError):
    def __init__(self, root: Path) -> None:
        super().__init__(
            "ACS context was not found. Re-run `acs init --force` to refresh local state."
        )
        self.root = root


class ProjectNotFoundError(ACSError):
    def __init__(self, environment: str, project_id: str) -> None:
        super().__init__(
            f'Project "{project_id}" was not found in "{environment}". '
            "Use --env/--project overrides or create the project first."
        )
        self.environment = environment
        self.project_id = project_id


class InvalidEnvironmentError(ACSError):
    def __init__(self, value: str) -> None:
        super().__init__(
            f'Invalid environment "{value}". Expected one of: development, production.'
        )
        self.value = value


class InvalidNameError(ACSError):
    """A name sanitized down to nothing."""


class DuplicateNameError(ACSError):
    def __init__(self, name: str, scope_label: str, kind: str = "Runtime instance") -> None:
        super().__init__(f'{kind} "{name}" already exists in {scope_label}.')
        self.name = name
        self.scope_label = scope_label


class RecordNotFoundError(ACSError):
    """A record file or a named record does not exist."""


class InstanceNotFoundError(RecordNotFoundError):
    def __init__(self, name: str, scope_label: str) -> None:
        super().__init__(f'No runtime instance named "{name}" exists in {scope_label}.')
        self.name = name


class RunNotFoundError(RecordNotFoundError):
    def __init__(self, run_id: str, scope_label: str) -> None:
        super().__init__(f'Run "{run_id}" does not exist in {scope_label}.')
        self.run_id = run_id


class CorruptRecordError(ACSError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Corrupt record at {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(ACSError):
    """Configuration file missing or invalid."""


class ExecutionError(ACSError):
    """The external runtime command could not be started or failed."""
