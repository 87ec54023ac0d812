# MDTasks Output Module
# Rich console output

from mdtasks.output.console import Console, create_console

__all__ = [
    "Console",
    "create_console",
]
