"""Configuration for layerkit."""

from layerkit.config.runtime import Config

__all__ = ["Config"]
