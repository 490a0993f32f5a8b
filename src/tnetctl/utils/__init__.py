"""Shared utilities for tnetctl."""

from ._logging import LogFormatType, create_logger, log_level_from_string, mask_secrets

__all__ = ["LogFormatType", "create_logger", "log_level_from_string", "mask_secrets"]
