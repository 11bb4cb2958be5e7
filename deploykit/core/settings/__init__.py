"""Settings and configuration loading."""

from .settings import (
    DEFAULT_STATE_FILE,
    DeploykitSettings,
    TaskSequenceStoreOptions,
    load_config_file,
    load_settings,
)

__all__ = [
    "DEFAULT_STATE_FILE",
    "DeploykitSettings",
    "TaskSequenceStoreOptions",
    "load_config_file",
    "load_settings",
]
