"""Configuration package for the Invest Tracker service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
