"""Data-type gate tests"""

import pytest
from sqlalchemy.exc import OperationalError

from unified_sync.core.exceptions import UnknownProviderError
from unified_sync.models.sync_config import ConnectionSyncConfig
from unified_sync.services.data_type_gate import DataTypeGate, data_type_key, get_default_sync_config


class TestDefaults:
    def test_everything_enabled_without_config(self, db):
        gate = DataTypeGate(db)
        assert gate.should_sync("c1", "github", "issue") is True
        assert gate.should_sync("c1", "github", "repository") is True
        assert gate.should_sync("c1", "google-drive", "file") is True

    def test_unknown_provider_and_type_allowed(self, db):
        gate = DataTypeGate(db)
        assert gate.should_sync("c1", "some-new-crm", "ticket") is True
        assert gate.should_sync("c1", "github", "gist") is True

    def test_object_type_maps_to_data_type_key(self):
        assert data_type_key("github", "issue") == "issues"
        assert data_type_key("github-getting-started", "repository") == "repositories"
        assert data_type_key("google-drive", "folder") == "files"
        assert data_type_key("unknown", "file") is None

    def test_default_config_shape(self):
        config = get_default_sync_config("salesforce")
        assert set(config) == {"accounts", "contacts", "opportunities"}
        assert config["opportunities"] == {"enabled": True, "include_in_publish": False}


class TestOverrides:
    def test_disabled_type_is_gated(self, db):
        gate = DataTypeGate(db)
        gate.update_config("c1", "github", {"issues": {"enabled": False, "include_in_publish": False}})

        assert gate.should_sync("c1", "github", "issue") is False
        assert gate.should_sync("c1", "github", "repository") is True
        # other connections keep the defaults
        assert gate.should_sync("c2", "github", "issue") is True

    def test_update_replaces_previous_row(self, db):
        gate = DataTypeGate(db)
        gate.update_config("c1", "github", {"issues": {"enabled": False, "include_in_publish": True}})
        gate.update_config("c1", "github", {"issues": {"enabled": True, "include_in_publish": True}})

        assert gate.should_sync("c1", "github", "issue") is True
        assert gate.get_config("c1", "github")["sync_config"]["issues"]["enabled"] is True

    def test_publish_flag_independent_of_sync(self, db):
        gate = DataTypeGate(db)
        gate.update_config("c1", "jira", {"projects": {"enabled": True, "include_in_publish": False}})

        assert gate.should_sync("c1", "jira", "project") is True
        assert gate.should_publish("c1", "jira", "project") is False
        assert gate.unpublished_object_types("c1", "jira") == ["project"]

    def test_get_config_merges_defaults(self, db):
        gate = DataTypeGate(db)
        gate.update_config("c1", "zoho-crm", {"deals": {"enabled": False, "include_in_publish": False}})

        config = gate.get_config("c1", "zoho-crm")
        assert config["provider_display_name"] == "Zoho CRM"
        assert config["sync_config"]["deals"]["enabled"] is False
        assert config["sync_config"]["accounts"]["enabled"] is True
        assert config["updated_at"] is not None

    def test_get_config_unknown_provider(self, db):
        with pytest.raises(UnknownProviderError):
            DataTypeGate(db).get_config("c1", "nope")


class TestFailOpen:
    def test_lookup_error_allows_sync(self, db, monkeypatch):
        gate = DataTypeGate(db)

        def broken_load(connection_id, provider):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(gate, "_load", broken_load)
        assert gate.should_sync("c1", "github", "issue") is True

    def test_malformed_stored_entries_are_ignored(self, db):
        db.add(ConnectionSyncConfig(connection_id="c1", provider="github", sync_config={"issues": "off", "repositories": {"enabled": False}}))
        db.add(ConnectionSyncConfig(connection_id="c2", provider="github", sync_config=["issues"]))
        db.commit()
        gate = DataTypeGate(db)

        assert gate.should_sync("c1", "github", "issue") is True
        assert gate.should_sync("c1", "github", "repository") is False
        assert gate.should_sync("c2", "github", "issue") is True
        assert gate.get_config("c1", "github")["sync_config"]["issues"] == {"enabled": True, "include_in_publish": False}
