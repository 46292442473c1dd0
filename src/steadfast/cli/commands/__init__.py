"""CLI command modules."""

from .config_cmd import config_app
from .inspect_cmd import backoff, classify, plan

__all__ = ["backoff", "classify", "config_app", "plan"]
