"""
Configuration package for the Dhamma seeder.

Re-exports all configuration components.
"""

from .constants import (
    VALID_CONTENT_TYPES,
    VALID_LANGUAGES,
    DEFAULT_LANGUAGE,
    FIRESTORE_MAX_BATCH_SIZE,
    DEFAULT_DAILY_WRITE_LIMIT,
)
from .settings import SeederSettings, load_settings
from .logging import setup_logging, console

__all__ = [
    # Constants
    'VALID_CONTENT_TYPES',
    'VALID_LANGUAGES',
    'DEFAULT_LANGUAGE',
    'FIRESTORE_MAX_BATCH_SIZE',
    'DEFAULT_DAILY_WRITE_LIMIT',

    # Classes
    'SeederSettings',

    # Functions and objects
    'load_settings',
    'setup_logging',
    'console',
]
