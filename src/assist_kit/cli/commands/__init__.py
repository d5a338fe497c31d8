"""CLI command modules for assist-kit."""

from .config_cmd import config
from .init import init
from .remove import remove
from .task import task
from .update import update

__all__ = ["config", "init", "remove", "task", "update"]
