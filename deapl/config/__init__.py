# deapl/config/__init__.py
"""
Configuration for deapl.
"""

from .settings import TranslatorSettings, load_settings, invalidate_cache

__all__ = ['TranslatorSettings', 'load_settings', 'invalidate_cache']
