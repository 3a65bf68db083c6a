import pytest

from simple_github.db import create_db_engine
from simple_github.services.credentials import CredentialStore


@pytest.mark.unit
class TestCredentialStore:
    def test_first_run_returns_none(self, credentials):
        assert credentials.get() is None

    def test_set_then_get(self, credentials):
        credentials.set("gho_first")
        assert credentials.get() == "gho_first"

    def test_set_overwrites(self, credentials):
        credentials.set("gho_first")
        credentials.set("gho_second")
        assert credentials.get() == "gho_second"

    def test_token_survives_restart(self, settings, credentials):
        credentials.set("gho_persisted")

        engine = create_db_engine(settings.database_url)
        try:
            assert CredentialStore(engine).get() == "gho_persisted"
        finally:
            engine.dispose()

    def test_creates_table_on_fresh_database(self, tmp_path):
        engine = create_db_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
        try:
            assert CredentialStore(engine).get() is None
        finally:
            engine.dispose()
