# Overview: Accessors for the per-app Store and upload storage.

from flask import current_app

from .persistence import Store
from .services.upload_service import UploadStorage

STORE_KEY = "catalog.store"
UPLOADS_KEY = "catalog.uploads"


def get_store() -> Store:
    return current_app.extensions[STORE_KEY]


def get_uploads() -> UploadStorage:
    return current_app.extensions[UPLOADS_KEY]
