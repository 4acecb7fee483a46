"""Configuration models for element-mcp."""

from .config_models import MEMORY_STORAGE, ElementMcpConfig, load_config

__all__ = ["ElementMcpConfig", "MEMORY_STORAGE", "load_config"]
