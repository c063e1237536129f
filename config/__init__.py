"""
Модуль конфигурации движка сертификатов.
"""

from .settings import get_settings, setup_logging, Settings

__version__ = "1.0.0"

__all__ = ['get_settings', 'setup_logging', 'Settings']
