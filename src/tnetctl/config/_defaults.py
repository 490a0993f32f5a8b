"""Default configuration values.

DEFAULT_CONFIG is a plain dict so it can be merged with file, environment
and CLI layers by deep_merge. The merge functions create copies.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "server": {
        "host": "0.0.0.0",  # noqa: S104
        "port": 8080,
        "status_interval": 10.0,
    },
    "process": {
        "command": ["tnet"],
        "launch_timeout": 10.0,
        "terminate_timeout": 10.0,
        "kill_after": 5.0,
        "startup_grace": 0.0,
        "reconcile_interval": 2.0,
    },
    "storage": {
        "state_file": "",
    },
    "auth": {
        "token": "",
    },
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
}
