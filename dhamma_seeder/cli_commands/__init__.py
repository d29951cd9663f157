"""
Command classes behind the dhamma-seed CLI.

Each command takes plain keyword arguments (setting overrides included) and
returns a result dict instead of printing or exiting, so the same operations
can be driven from scripts or tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseCommand(ABC):
    """Interface shared by all seeder commands."""

    @abstractmethod
    def execute(self, **kwargs) -> Dict[str, Any]:
        """Run the command.

        Returns:
            {"success": True, "data": ...} or {"success": False, "error": str}
        """


from .seed import SeedCommand
from .schema import SchemaCommand
from .export import ExportCommand
from .system import StatusCommand

__all__ = [
    'BaseCommand',
    'SeedCommand',
    'SchemaCommand',
    'ExportCommand',
    'StatusCommand',
]
