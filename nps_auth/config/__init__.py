from .loader import load_settings, settings_from_mapping
from .schema import RadiusServerConfig, RadiusSettings

__all__ = [
    "RadiusServerConfig",
    "RadiusSettings",
    "load_settings",
    "settings_from_mapping",
]
