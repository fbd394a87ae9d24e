"""Settings management."""
from core.settings.settings_manager import DEFAULT_SETTINGS, SettingsManager

__all__ = ['DEFAULT_SETTINGS', 'SettingsManager']
