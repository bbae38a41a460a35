# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from pollchat.config import INACTIVITY_TIMEOUT_MS, Settings
from pollchat.main import create_app


@pytest.fixture
def client(database_url, clock):
    settings = Settings(database_url=database_url, remove_interval_ms=60_000)
    app = create_app(settings, clock=clock)
    with TestClient(app) as c:
        yield c


def join(client, name):
    return client.post("/participants", json={"name": name})


def say(client, user, text, to="Todos", type_="message"):
    return client.post(
        "/messages", json={"to": to, "text": text, "type": type_}, headers={"User": user}
    )


def test_register_and_list_participants(client, clock):
    assert join(client, "Ana").status_code == 201

    res = client.get("/participants")
    assert res.status_code == 200
    assert res.json() == [{"name": "Ana", "lastStatus": clock.now}]


def test_register_duplicate_is_409(client):
    join(client, "Ana")
    res = join(client, "Ana")
    assert res.status_code == 409
    assert "detail" in res.json()


@pytest.mark.parametrize("body", [{}, {"name": ""}, {"name": "   "}, {"name": 12}])
def test_register_validation_is_422(client, body):
    assert client.post("/participants", json=body).status_code == 422


def test_send_and_read_messages(client):
    join(client, "Ana")
    join(client, "Bia")
    assert say(client, "Ana", "oi <b>geral</b>").status_code == 201
    assert say(client, "Bia", "so pra Ana", to="Ana", type_="private_message").status_code == 201
    assert say(client, "Bia", "segredo", to="Caio", type_="private_message").status_code == 201

    res = client.get("/messages", headers={"User": "Ana"})
    assert res.status_code == 200
    body = res.json()
    assert [m["text"] for m in body] == ["Ana joined", "Bia joined", "oi geral", "so pra Ana"]
    assert set(body[2]) == {"id", "from", "to", "text", "type", "time"}
    assert body[2]["from"] == "Ana"
    assert body[0]["type"] == "status"

    res = client.get("/messages", params={"limit": 1}, headers={"User": "Ana"})
    assert [m["text"] for m in res.json()] == ["so pra Ana"]

    res = client.get("/messages", params={"limit": "nope"}, headers={"User": "Ana"})
    assert len(res.json()) == 4


def test_send_validation(client):
    join(client, "Ana")
    assert say(client, "Ana", "x", type_="status").status_code == 422
    assert say(client, "Ana", "").status_code == 422
    assert client.post("/messages", json={"to": "Todos", "text": "x", "type": "message"}).status_code == 422


def test_send_from_unknown_user_is_404(client):
    assert say(client, "Ghost", "boo").status_code == 404


def test_edit_and_delete_messages(client):
    join(client, "Ana")
    join(client, "Bia")
    say(client, "Ana", "helo")
    message_id = client.get("/messages", params={"limit": 1}, headers={"User": "Ana"}).json()[0]["id"]

    payload = {"to": "Todos", "text": "hello", "type": "message"}
    assert client.put(f"/messages/{message_id}", json=payload, headers={"User": "Bia"}).status_code == 403

    res = client.put(f"/messages/{message_id}", json=payload, headers={"User": "Ana"})
    assert res.status_code == 200
    assert res.json()["text"] == "hello"
    assert res.json()["id"] == message_id

    assert client.delete(f"/messages/{message_id}", headers={"User": "Bia"}).status_code == 403
    assert client.delete(f"/messages/{message_id}", headers={"User": "Ana"}).status_code == 204
    assert client.delete(f"/messages/{message_id}", headers={"User": "Ana"}).status_code == 404


def test_status_heartbeat(client, clock):
    join(client, "Ana")
    clock.advance(5_000)

    assert client.post("/status", headers={"User": "Ana"}).status_code == 200
    assert client.get("/participants").json()[0]["lastStatus"] == clock.now
    assert client.post("/status", headers={"User": "Ghost"}).status_code == 404


def test_scheduler_sweep_evicts_idle_participant(client, clock):
    join(client, "Ana")
    clock.advance(INACTIVITY_TIMEOUT_MS)

    scheduler = client.app.state.scheduler
    assert client.portal.call(scheduler.run_once) == ["Ana"]

    assert client.get("/participants").json() == []
    texts = [m["text"] for m in client.get("/messages", headers={"User": "Bia"}).json()]
    assert texts == ["Ana joined", "Ana left"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_importing_main_builds_no_app():
    import pollchat.main as main

    assert not hasattr(main, "app")


def test_ampersand_user_over_http(client):
    assert join(client, "Tom & Jerry").status_code == 201
    assert say(client, "Tom & Jerry", "a < b & c").status_code == 201
    assert client.post("/status", headers={"User": "Tom & Jerry"}).status_code == 200

    body = client.get("/messages", headers={"User": "Tom & Jerry"}).json()
    assert [m["text"] for m in body] == ["Tom & Jerry joined", "a < b & c"]
    assert body[1]["from"] == "Tom & Jerry"
