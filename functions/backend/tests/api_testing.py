"""
Shared setup for the API tests: in-memory backends and fixed settings.
"""

import unittest

from fastapi.testclient import TestClient

from backend.app import create_app
from backend.auth import InMemoryAuthClient
from backend.config import Settings, get_settings
from backend.db import InMemoryDbClient
from backend.dependencies import get_auth_client, get_db_client, get_storage_client
from backend.storage import InMemoryStorageClient

PREFIX = "/functions/v1"


def make_settings(**overrides) -> Settings:
    values = {
        "api_prefix": PREFIX,
        "use_in_memory_backends": True,
        "stancer_private_key": None,
        "stripe_secret_key": None,
        "billing_internal_secret": None,
    }
    values.update(overrides)
    return Settings(**values)


class ApiTestCase(unittest.TestCase):
    settings_overrides: dict = {}

    def setUp(self):
        self.db = InMemoryDbClient()
        self.storage = InMemoryStorageClient()
        self.auth = InMemoryAuthClient()
        self.settings = make_settings(**self.settings_overrides)

        self.app = create_app()
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.app.dependency_overrides[get_storage_client] = lambda: self.storage
        self.app.dependency_overrides[get_auth_client] = lambda: self.auth
        self.client = TestClient(self.app)

    def login(self, user_id: str, email=None) -> dict:
        token = f"token-{user_id}"
        self.auth.add_user(token, user_id, email=email)
        return {"Authorization": f"Bearer {token}"}

    def post(self, name: str, json=None, headers=None):
        return self.client.post(f"{PREFIX}/{name}", json=json, headers=headers)
