from .core import load_config, load_config_or_default, validate_config
from .paths import ServicePaths, build_service_paths

__all__ = [
    "ServicePaths",
    "build_service_paths",
    "load_config",
    "load_config_or_default",
    "validate_config",
]
