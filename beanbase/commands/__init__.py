from .bean_commands import bean_cli
from .setup_commands import drop_db_command, init_db_command

__all__ = ["bean_cli", "init_db_command", "drop_db_command"]
