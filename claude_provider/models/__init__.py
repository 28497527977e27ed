"""Model catalog and upstream error classification."""

from .catalog import ModelInfo, get_plugin_info, list_models, supports_model
from .errors import ProviderError, parse_error


__all__ = [
    "ModelInfo",
    "ProviderError",
    "get_plugin_info",
    "list_models",
    "parse_error",
    "supports_model",
]
