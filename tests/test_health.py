def test_root_banner(client):
    body = client.get("/").json()
    assert body["app"] == "ComplaintDesk"
    assert body["docs"] == "/docs"


def test_health_pings_database(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "healthy"
    assert body["database"] == "ok"
