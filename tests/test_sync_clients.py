import json

import pytest

from relay_api.models import Client
from scripts import sync_clients


@pytest.fixture
def clients_file(tmp_path):
    prompts = tmp_path / "prompts"
    prompts.mkdir()
    (prompts / "onmore.json").write_text(
        json.dumps({"identity": "You are Mia.", "businessHours": "Mon-Fri"}), encoding="utf-8"
    )
    path = tmp_path / "clients.json"
    path.write_text(
        json.dumps(
            {
                "defaultClientId": "onmore",
                "clients": [
                    {
                        "id": "onmore",
                        "name": "OnMore",
                        "active": True,
                        "domain": "onmore.au",
                        "allowedOrigins": ["https://onmore.au"],
                        "instagramRecipientIds": [17841400000000],
                        "promptFile": "prompts/onmore.json",
                    },
                    {"id": "legacy", "active": False},
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def patched_db(monkeypatch, engine, session_factory):
    monkeypatch.setattr(sync_clients, "engine", engine)
    monkeypatch.setattr(sync_clients, "SessionLocal", session_factory)


class TestSyncClients:
    def test_creates_clients(self, clients_file, patched_db, db):
        assert sync_clients.sync(clients_file) == 2

        onmore = db.get(Client, "onmore")
        assert onmore.status == "active"
        assert onmore.platform_recipient_ids == ["17841400000000"]
        assert onmore.config["identity"] == "You are Mia."
        assert onmore.config["allowedOrigins"] == ["https://onmore.au"]
        assert db.get(Client, "legacy").status == "inactive"

    def test_updates_existing_client(self, clients_file, patched_db, db, add_tenant):
        add_tenant("onmore", domain="old.example")

        sync_clients.sync(clients_file)

        db.expire_all()
        assert db.get(Client, "onmore").domain == "onmore.au"

    def test_dry_run_writes_nothing(self, clients_file, patched_db, db):
        assert sync_clients.sync(clients_file, dry_run=True) == 2
        assert db.query(Client).count() == 0

    def test_invalid_prompt_file_fails(self, tmp_path, patched_db):
        (tmp_path / "bad.json").write_text(json.dumps({"servicePlans": [{"price": 1}]}), encoding="utf-8")
        path = tmp_path / "clients.json"
        path.write_text(json.dumps({"clients": [{"id": "x", "promptFile": "bad.json"}]}), encoding="utf-8")

        with pytest.raises(ValueError):
            sync_clients.sync(path)
