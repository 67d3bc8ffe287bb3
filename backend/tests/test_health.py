from pathlib import Path


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


def test_database_health_reports_decrypt_fallbacks(client, app):
    app.state.cipher.decrypt("legacy plaintext")

    response = client.get("/api/v1/database/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["tables_exist"] is True
    assert body["details"]["decrypt_fallbacks"]["plaintext"] == 1
    assert body["details"]["open_tenant_stores"] == 0


def test_database_connection(client):
    assert client.get("/api/v1/database/connection").json()["status"] == "connected"


def test_master_key_created_on_startup(app, settings):
    assert Path(settings.MASTER_KEY_PATH).exists()
