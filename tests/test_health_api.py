import fsapi.api.main as api_main


def test_health_reports_healthy_when_switch_answers(client, switch) -> None:
    switch.reply("api status", "UP 0 years, 0 days, 1 hour\n")

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": api_main.settings.app_version}
    assert switch.lines == ["api status"]


def test_health_returns_503_when_switch_is_unreachable(client, switch) -> None:
    switch.connect_error = ConnectionRefusedError("refused")

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {
        "status": "unhealthy",
        "error": "ESL connection unavailable",
        "version": api_main.settings.app_version,
    }


def test_version_endpoint(client) -> None:
    response = client.get("/version")

    assert response.status_code == 200
    payload = response.json()
    assert payload["name"] == "fsapi"
    assert payload["version"]
