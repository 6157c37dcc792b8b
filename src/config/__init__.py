"""Configuration module -- exports Settings."""

from src.config.settings import Settings

__all__ = ["Settings"]
