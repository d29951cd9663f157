"""
Firebase Admin initialization and Firestore client access.
"""

import os
from typing import Any

import firebase_admin
import structlog
from firebase_admin import credentials, firestore

from .config.settings import SeederSettings
from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def get_firestore_client(settings: SeederSettings) -> Any:
    """
    Initialize the default Firebase app (once) and return a Firestore client.

    Args:
        settings: Seeder settings holding FIREBASE_CREDENTIALS

    Returns:
        google.cloud.firestore.Client

    Raises:
        ConfigurationError: If the service account file is missing
    """
    cred_path = settings.require_firestore()
    if not os.path.isfile(cred_path):
        raise ConfigurationError(f"Firebase service account file not found: {cred_path}")

    try:
        app = firebase_admin.get_app()
    except ValueError:
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        app = firebase_admin.initialize_app(credentials.Certificate(cred_path), options)
        logger.info("Initialized Firebase app", project=app.project_id)

    return firestore.client(app)
