from .core import (
    DatabaseSettings,
    LoggingSettings,
    RuntimeSettings,
    Settings,
    load_settings,
    sanitize_dict,
    _project_root,
    _data_dir,
)
from .settlement_params import SettlementParams, get_settlement_params

__all__ = [
    "DatabaseSettings",
    "LoggingSettings",
    "RuntimeSettings",
    "Settings",
    "SettlementParams",
    "get_settlement_params",
    "load_settings",
    "sanitize_dict",
    "_project_root",
    "_data_dir",
]
