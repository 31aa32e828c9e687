from __future__ import annotations

from .batch import BatchRunner, RunStatistics
from .config import config_sha256, load_config
from .config_schema import AppConfig
from .errors import (
    AssemblyError,
    ConfigError,
    ExhaustedRetriesError,
    PreconditionError,
    ResolutionError,
    TransferError,
)
from .post import PostReference

__all__ = [
    "AppConfig",
    "AssemblyError",
    "BatchRunner",
    "ConfigError",
    "ExhaustedRetriesError",
    "PostReference",
    "PreconditionError",
    "ResolutionError",
    "RunStatistics",
    "TransferError",
    "config_sha256",
    "load_config",
]
