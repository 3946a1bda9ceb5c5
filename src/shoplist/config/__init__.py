"""Configuration package for ShopList."""
from .settings import ShopListSettings, get_settings, clear_settings_cache

__all__ = ['ShopListSettings', 'get_settings', 'clear_settings_cache']
