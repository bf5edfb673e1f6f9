from uuid import uuid4

import pytest


@pytest.mark.integration
def test_list_beats(client, make_beat):
    make_beat(title="Visible")
    make_beat(title="Sold", is_active=False)

    response = client.get("/api/v1/beats")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["page"] == 1
    assert body["pages"] == 1
    item = body["items"][0]
    assert item["title"] == "Visible"
    assert item["preview_url"] == "https://cdn.test/previews/x/preview.mp3"
    assert "files" not in item
    assert [entry["type"] for entry in item["licenses"]] == ["basic", "standard", "pro", "exclusive"]


@pytest.mark.integration
def test_list_beats_filters(client, make_beat):
    make_beat(title="Trap", genres=["Trap"])
    make_beat(title="Drill", genres=["Drill"], moods=["Cold"])

    assert [b["title"] for b in client.get("/api/v1/beats", params={"genre": "Drill"}).json()["items"]] == ["Drill"]
    assert [b["title"] for b in client.get("/api/v1/beats", params={"mood": "Cold"}).json()["items"]] == ["Drill"]
    assert client.get("/api/v1/beats", params={"search": "tra"}).json()["total"] == 1


@pytest.mark.integration
def test_list_beats_rejects_bad_paging(client):
    assert client.get("/api/v1/beats", params={"page": 0}).status_code == 422
    assert client.get("/api/v1/beats", params={"size": 500}).status_code == 422


@pytest.mark.integration
def test_get_beat(client, make_beat):
    beat = make_beat()

    response = client.get(f"/api/v1/beats/{beat.id}")

    assert response.status_code == 200
    assert response.json()["play_count"] == 1


@pytest.mark.integration
def test_get_inactive_or_unknown_beat(client, make_beat):
    hidden = make_beat(is_active=False)
    assert client.get(f"/api/v1/beats/{hidden.id}").status_code == 404
    assert client.get(f"/api/v1/beats/{uuid4()}").status_code == 404
    assert client.get("/api/v1/beats/not-a-uuid").status_code == 422
