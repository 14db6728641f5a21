"""ACS — local tenancy and runtime instance registry."""

__version__ = "0.1.0"
