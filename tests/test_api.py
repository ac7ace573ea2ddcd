API = "/api/v1"


def _create(client, spanish="hola", english="hello", **extra):
    response = client.post(f"{API}/vocabulary/", json={"spanish": spanish, "english": english, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def test_vocabulary_crud(client):
    created = _create(client, category="general", tags=["greeting"])

    listing = client.get(f"{API}/vocabulary/", params={"search": "hol"})
    assert listing.status_code == 200
    assert listing.json()["total"] == 1

    fetched = client.get(f"{API}/vocabulary/{created['id']}")
    assert fetched.json()["spanish"] == "hola"

    patched = client.patch(
        f"{API}/vocabulary/{created['id']}", json={"english": "hi", "repetitions": 7}
    )
    assert patched.status_code == 200
    assert patched.json()["english"] == "hi"
    assert patched.json()["repetitions"] == 0

    retagged = client.patch(
        f"{API}/vocabulary/{created['id']}", json={"tags": "a,a,b", "difficulty": 9}
    )
    assert retagged.status_code == 200
    assert retagged.json()["tags"] == ["a", "b"]
    assert retagged.json()["difficulty"] == 5
    assert retagged.json()["english"] == "hi"

    deleted = client.delete(f"{API}/vocabulary/{created['id']}")
    assert deleted.status_code == 204
    assert client.get(f"{API}/vocabulary/{created['id']}").status_code == 404


def test_vocabulary_errors_map_to_http(client):
    _create(client)

    duplicate = client.post(f"{API}/vocabulary/", json={"spanish": "HOLA", "english": "hello"})
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["details"] == {"spanish": "HOLA"}

    invalid = client.post(f"{API}/vocabulary/", json={"spanish": "gato", "english": ""})
    assert invalid.status_code == 422

    missing = client.post(f"{API}/vocabulary/unknown/review", json={"quality": 4})
    assert missing.status_code == 404


def test_review_endpoint_schedules_word(client):
    created = _create(client)

    response = client.post(f"{API}/vocabulary/{created['id']}/review", json={"quality": 5})

    body = response.json()
    assert response.status_code == 200
    assert body["repetitions"] == 1
    assert body["interval"] == 1
    assert body["last_quality"] == 5


def test_import_and_export(client):
    report = client.post(
        f"{API}/vocabulary/import",
        json=[
            {"spanish": "uno", "english": "one"},
            {"spanish": "dos", "english": ""},
            {"spanish": "tres", "english": "three"},
        ],
    )
    assert report.status_code == 200
    assert report.json()["imported"] == 2
    assert report.json()["errors"] == [{"row": 2, "reason": "Spanish and English translations are required"}]

    csv_report = client.post(
        f"{API}/vocabulary/import/csv",
        content="spanish,english,category\ncuatro,four,numbers\n".encode("utf-8"),
        headers={"Content-Type": "text/csv"},
    )
    assert csv_report.json()["imported"] == 1

    exported = client.get(f"{API}/vocabulary/export/csv")
    assert exported.headers["content-type"].startswith("text/csv")
    assert len(exported.text.strip().splitlines()) == 4


def test_statistics_endpoints(client):
    _create(client, category="food", difficulty=2)

    stats = client.get(f"{API}/vocabulary/stats").json()
    assert stats["total"] == 1
    assert stats["by_category"] == {"food": 1}

    assert client.get(f"{API}/vocabulary/stats/review").json()["new"] == 1
    assert len(client.get(f"{API}/vocabulary/due").json()) == 1
    assert len(client.get(f"{API}/vocabulary/forecast", params={"days": 3}).json()) == 3


def test_session_flow(client, llm):
    _create(client, "hola", "hello")
    _create(client, "agua", "water")

    started = client.post(f"{API}/sessions/", json={"scenario": "restaurant"})
    assert started.status_code == 201
    assert len(started.json()["target_words"]) == 2

    turn = client.post(f"{API}/sessions/turns", json={"content": "Hola, un agua por favor", "confidence": 0.95})
    assert turn.status_code == 200
    assert turn.json()["stats"]["words_used"] == 2

    assert client.post(f"{API}/sessions/", json={}).status_code == 409
    assert client.post(f"{API}/sessions/pause").json()["status"] == "paused"
    assert client.post(f"{API}/sessions/turns", json={"content": "hola"}).status_code == 409
    assert client.post(f"{API}/sessions/resume").json()["status"] == "active"
    assert client.post(f"{API}/sessions/turns", json={"content": "  "}).status_code == 422

    llm.should_fail = True
    failed = client.post(f"{API}/sessions/turns", json={"content": "hola"})
    assert failed.status_code == 503
    llm.should_fail = False

    assert client.get(f"{API}/sessions/current").json()["message_count"] == 1

    summary = client.post(f"{API}/sessions/end")
    assert summary.status_code == 200
    assert len(summary.json()["reviewed"]) == 2
    assert client.post(f"{API}/sessions/end").status_code == 409

    history = client.get(f"{API}/sessions/history").json()
    assert [record["id"] for record in history] == [started.json()["session_id"]]


def test_session_endpoints_without_session(client):
    assert client.get(f"{API}/sessions/current").status_code == 409
    assert client.post(f"{API}/sessions/end").status_code == 409
    assert client.get(f"{API}/sessions/history").json() == []
