"""Process-wide settings manager and the settings() accessor."""

from typing import Any, Optional

from scoped_settings.manager import SettingsManager

# Global singleton
_settings_manager: Optional[SettingsManager] = None


def get_settings_manager() -> SettingsManager:
    """Get the global SettingsManager instance."""
    global _settings_manager
    if _settings_manager is None:
        from scoped_settings.bootstrap import create_manager

        _settings_manager = create_manager()
    return _settings_manager


def set_settings_manager(manager: SettingsManager) -> None:
    """Set the global SettingsManager instance."""
    global _settings_manager
    _settings_manager = manager


def reset_settings_manager() -> None:
    """Reset the settings manager singleton (for testing)."""
    global _settings_manager
    _settings_manager = None


def settings(key: Optional[str] = None, default: Any = None) -> Any:
    """
    Read a setting, or get the manager itself when no key is given.

    Examples:
        settings("mail.driver", "sendmail")
        settings().for_(user).set("ui.theme", "dark")
    """
    manager = get_settings_manager()
    if key is None:
        return manager

    return manager.get(key, default)
