"""Broker configuration (pydantic-settings, optional YAML file)."""

from approval_broker.config.settings import (
    ApprovalConfig,
    JournalConfig,
    LoggingConfig,
    Settings,
    load_settings,
)

__all__ = [
    'ApprovalConfig',
    'JournalConfig',
    'LoggingConfig',
    'Settings',
    'load_settings',
]
