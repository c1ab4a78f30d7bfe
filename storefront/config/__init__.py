"""Configuration module for the storefront backend."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
