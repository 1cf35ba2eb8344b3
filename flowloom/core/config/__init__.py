from .config_loader import DiagramSettings, get_settings, load_settings, reload_settings

__all__ = ["DiagramSettings", "get_settings", "load_settings", "reload_settings"]
