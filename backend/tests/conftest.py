import os
import tempfile

# Keep import-time settings (and hearth.main's default app) out of the
# working directory.
_BOOT_DIR = tempfile.mkdtemp(prefix="hearth-tests-")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DIRECTORY_DATABASE_URL", f"sqlite:///{_BOOT_DIR}/directory.db")
os.environ.setdefault("TENANT_DATA_DIR", os.path.join(_BOOT_DIR, "tenants"))
os.environ.setdefault("MASTER_KEY_PATH", os.path.join(_BOOT_DIR, "master.key"))
os.environ.setdefault("BACKUP_DIR", os.path.join(_BOOT_DIR, "backups"))

import pytest
from fastapi.testclient import TestClient

from hearth.core.config import Settings
from hearth.core.database import create_session_factory
from hearth.core.encryption import FieldCipher
from hearth.core.gateway import EncryptionGateway
from hearth.core.security import create_access_token
from hearth.core.tenant_registry import TenantStoreRegistry
from hearth.main import create_app
from hearth.models import Household, HouseholdRole, User, UserHousehold


@pytest.fixture
def cipher():
    return FieldCipher(os.urandom(32))


@pytest.fixture
def gateway(cipher):
    return EncryptionGateway(cipher)


@pytest.fixture
def registry(tmp_path):
    registry = TenantStoreRegistry(tmp_path / "tenants")
    yield registry
    registry.close_all()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        ENVIRONMENT="test",
        DIRECTORY_DATABASE_URL=f"sqlite:///{tmp_path}/directory.db",
        TENANT_DATA_DIR=str(tmp_path / "tenants"),
        MASTER_KEY_PATH=str(tmp_path / "keys" / "master.key"),
        BACKUP_DIR=str(tmp_path / "backups"),
        JWT_SECRET_KEY="test-secret-key-for-the-hearth-test-suite",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def directory_sessions(client, app):
    # Depends on client so startup has created the directory tables
    return create_session_factory(app.state.directory_engine)


@pytest.fixture
def tenancy(directory_sessions):
    """
    Two households; alice is admin of 1, bob is member of 1, carol is
    viewer of 1, dave is admin of 2 only
    """
    with directory_sessions() as db:
        households = [Household(name="Smith"), Household(name="Jones")]
        users = [
            User(email="alice@example.com", first_name="Alice"),
            User(email="bob@example.com", first_name="Bob"),
            User(email="carol@example.com", first_name="Carol"),
            User(email="dave@example.com", first_name="Dave"),
        ]
        db.add_all(households + users)
        db.flush()

        alice, bob, carol, dave = users
        h1, h2 = households
        db.add_all([
            UserHousehold(user_id=alice.id, household_id=h1.id, role=HouseholdRole.ADMIN.value),
            UserHousehold(user_id=bob.id, household_id=h1.id, role=HouseholdRole.MEMBER.value),
            UserHousehold(user_id=carol.id, household_id=h1.id, role=HouseholdRole.VIEWER.value),
            UserHousehold(user_id=dave.id, household_id=h2.id, role=HouseholdRole.ADMIN.value),
        ])
        db.commit()

        return {
            "h1": h1.id,
            "h2": h2.id,
            "alice": alice.id,
            "bob": bob.id,
            "carol": carol.id,
            "dave": dave.id,
        }


@pytest.fixture
def auth(settings):
    """Authorization headers for a user id"""

    def headers(user_id):
        return {"Authorization": f"Bearer {create_access_token(user_id, settings)}"}

    return headers
