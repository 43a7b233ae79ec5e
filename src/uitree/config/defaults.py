"""
uitree.config.defaults - Default configuration values
"""

DEFAULT_CONFIG = {
    "tree": {
        # What happens to reference nodes whose type is deleted: "warn" or "reject"
        "dangling_policy": "warn",
        "mutation_log_size": 100,
        "undo_depth": 50,
    },
    "document": {
        "path": "",
        # Wrap saved documents in {"version", "exportTime", "treeData"}
        "envelope": False,
        "indent": 2,
        "sanitize": False,
    },
    "autosave": {
        "enabled": True,
        "debounce_seconds": 1.0,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 5050,
        "cors_origins": ["*"],
    },
    "logging": {
        "level": "WARNING",
    },
}

CONFIG_FILENAME = ".uitree.toml"
LOCAL_CONFIG_FILENAME = ".uitree.local.toml"
ENV_PREFIX = "UITREE_"

DANGLING_POLICIES = ("warn", "reject")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
