"""
Pytest configuration.

Adds the project root to the Python path so that tests can import domain,
repositories, services and api. Replaces the Supabase client with an in-memory
fake and the VIN registry with a canned decoder for every test.
"""

import os
import sys
from pathlib import Path

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Settings are read on first use; these must exist before api.main is imported
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-at-least-32-characters")
os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")

import pytest

from config import get_settings
from fakes import ADMIN_PASSWORD, ADMIN_USERNAME, FakeSupabase


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Fresh settings per test with a known admin login and sheet config."""
    from services.auth_service import hash_password

    monkeypatch.setenv("ADMIN_USERNAME", ADMIN_USERNAME)
    monkeypatch.setenv("ADMIN_PASSWORD_HASH", hash_password(ADMIN_PASSWORD))
    monkeypatch.setenv("GOOGLE_SHEET_ID", "sheet-123")
    monkeypatch.setenv("GOOGLE_API_KEY", "sheet-key")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def db(monkeypatch) -> FakeSupabase:
    """In-memory Supabase shared by every repository during the test."""
    import repositories.client

    fake = FakeSupabase()
    monkeypatch.setattr(repositories.client, "_client", fake)
    return fake


@pytest.fixture(autouse=True)
def vin_registry(monkeypatch):
    """
    Canned VIN decoder. Tests can set `vin_registry.fail = True` to simulate
    an unreachable registry.
    """
    import services.vehicle_service
    from services.vin_decode_service import DecodedVin, VinDecodeError

    class Registry:
        fail = False
        calls: list = []

        def decode(self, vin, client=None):
            self.calls.append(vin)
            if self.fail:
                raise VinDecodeError(f"Failed to decode VIN {vin}")
            return DecodedVin(vin=vin, year=2020, make="Honda", model="Accord", trim="EX")

    registry = Registry()
    registry.calls = []
    monkeypatch.setattr(services.vehicle_service, "decode_vin", registry.decode)
    return registry


@pytest.fixture
def admin_headers():
    from services.auth_service import Role, create_access_token

    return {"Authorization": f"Bearer {create_access_token(ADMIN_USERNAME, Role.ADMIN)}"}


@pytest.fixture
def dealer_headers():
    """Factory: bearer headers for a dealer ID."""
    from services.auth_service import Role, create_access_token

    def make(dealer_id: int):
        return {"Authorization": f"Bearer {create_access_token(str(dealer_id), Role.DEALER)}"}

    return make
