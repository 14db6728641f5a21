"""Execution layer: turns a runtime instance into an external command."""
