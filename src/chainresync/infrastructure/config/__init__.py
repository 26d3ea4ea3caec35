from .repository import DEFAULT_CONFIG_FILE, SettingsRepository

__all__ = ["DEFAULT_CONFIG_FILE", "SettingsRepository"]
