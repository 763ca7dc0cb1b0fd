"""
Tests for the HTTP surface.
"""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from conftest import FakeConnector, FakeSession, FakeStore, mailbox, make_eml
from mailmigration.api.dependencies import get_archive_use_case, get_migration_use_case
from mailmigration.api.main import app
from mailmigration.application.committer import EmailCommitter
from mailmigration.application.use_cases import ImportArchiveUseCase, MigrateMailboxUseCase
from mailmigration.domain.errors import ConnectionRefused, HostUnreachable

BODY = {
    "hostname": "imap.example.com",
    "port": 993,
    "useSSL": True,
    "username": "user@example.com",
    "password": "secret",
}


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def use_connector(connector: FakeConnector, store=None) -> None:
    app.dependency_overrides[get_migration_use_case] = lambda: MigrateMailboxUseCase(
        connector=connector, committer=EmailCommitter(store)
    )


class TestMigrateEndpoint:
    def test_missing_fields(self, client):
        response = client.post("/mail/migrate", json={"hostname": "imap.example.com"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required fields"}

    def test_test_action_lists_mailboxes(self, client):
        use_connector(FakeConnector(FakeSession(mailboxes={"INBOX": [], "Sent": []})))

        response = client.post("/mail/migrate", json={**BODY, "action": "test"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "mailboxes": ["INBOX", "Sent"]}

    def test_migrate_returns_counters(self, client):
        store = FakeStore()
        session = FakeSession(mailboxes={"INBOX": mailbox(4), "Sent": mailbox(2, start_uid=50)})
        use_connector(FakeConnector(session), store)

        response = client.post(
            "/mail/migrate",
            json={**BODY, "folders": ["INBOX", "Sent"], "maxMessages": 5, "dateFrom": "", "dateTo": "2024-12-31"},
        )

        assert response.status_code == 200
        assert response.json() == {"processed": 5, "imported": 5, "failed": 0}

    def test_request_fields_reach_connector(self, client):
        connector = FakeConnector(FakeSession(mailboxes={"INBOX": []}))
        use_connector(connector)

        client.post("/mail/migrate", json={**BODY, "port": None, "useSSL": False, "allowInsecureTLS": True})

        host, port, secure, _, insecure = connector.calls[0]
        assert (host, port, secure, insecure) == ("imap.example.com", 993, False, True)

    @pytest.mark.parametrize(
        "error, message",
        [
            (HostUnreachable("getaddrinfo ENOTFOUND"), "IMAP host not found. Check hostname."),
            (ConnectionRefused("ECONNREFUSED"), "Connection refused. Check port and firewall."),
        ],
    )
    def test_connect_errors_map_to_stable_messages(self, client, error, message):
        use_connector(FakeConnector(error=error))

        response = client.post("/mail/migrate", json=BODY)

        assert response.status_code == 400
        assert response.json() == {"error": message}

    def test_enumeration_error(self, client):
        use_connector(FakeConnector(FakeSession(fail_list=True)))

        response = client.post("/mail/migrate", json={**BODY, "action": "test"})

        assert response.status_code == 400
        assert "error" in response.json()


class TestUploadEndpoint:
    def test_upload_zip(self, client):
        store = FakeStore()
        app.dependency_overrides[get_archive_use_case] = lambda: ImportArchiveUseCase(EmailCommitter(store))
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("a.eml", make_eml(subject="uploaded"))

        response = client.post("/mail/migrate/upload", files={"file": ("export.zip", buf.getvalue(), "application/zip")})

        assert response.status_code == 200
        assert response.json() == {"success": True, "processed": 1, "imported": 1, "failed": 0}
        assert store.rows[0]["subject"] == "uploaded"

    def test_invalid_zip(self, client):
        app.dependency_overrides[get_archive_use_case] = lambda: ImportArchiveUseCase(EmailCommitter(None))

        response = client.post("/mail/migrate/upload", files={"file": ("x.zip", b"nope", "application/zip")})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid ZIP file format"}

    def test_no_file(self, client):
        app.dependency_overrides[get_archive_use_case] = lambda: ImportArchiveUseCase(EmailCommitter(None))

        response = client.post("/mail/migrate/upload")

        assert response.status_code == 400
        assert response.json() == {"error": "No file provided"}


class TestHealth:
    def test_live(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_ready_without_store(self, client):
        body = client.get("/health/ready").json()

        assert body["status"] == "ready"
        assert body["services"] == {"email_store": "not_configured"}
