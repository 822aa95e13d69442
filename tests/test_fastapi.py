from typing import Any

import pytest

pytest.importorskip("httpx")
fastapi = pytest.importorskip("fastapi")

from fastapi import Depends
from fastapi.testclient import TestClient

import packager
from packager import schema as S
from packager.fastapi import PackagerResponse, get_packed_data, packed_body

PLAYER = S.define_schema("Player", 1, S.struct({"id": S.uint(), "name": S.string()}))
HEADERS = {"content-type": "application/octet-stream"}

app = fastapi.FastAPI()


@app.post("/echo")
def echo(value: Any = Depends(get_packed_data)):
    return PackagerResponse(value, filename="echo.pk")


@app.post("/player")
def rename(player: Any = Depends(packed_body(PLAYER))):
    player["name"] = player["name"].upper()
    return PackagerResponse(player, schema=PLAYER)


client = TestClient(app)


def test_echo_roundtrip():
    value = {"HP": 87, "Name": "UserName"}
    resp = client.post("/echo", content=packager.pack(value), headers=HEADERS)
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/octet-stream"
    assert resp.headers["x-packager-mode"] == "auto"
    assert resp.headers["content-disposition"] == 'attachment; filename="echo.pk"'
    assert packager.unpack(resp.content) == value


def test_schema_body():
    resp = client.post("/player", content=packager.pack({"id": 1, "name": "m"}, PLAYER), headers=HEADERS)
    assert resp.status_code == 200
    assert resp.headers["x-packager-schema"] == "Player/1"
    assert packager.unpack(resp.content, PLAYER) == {"id": 1, "name": "M"}


def test_wrong_content_type():
    resp = client.post("/echo", content=packager.pack(1), headers={"content-type": "application/json"})
    assert resp.status_code == 400


def test_invalid_packet():
    resp = client.post("/echo", content=b"XKA\x01\x00", headers=HEADERS)
    assert resp.status_code == 422
    assert "Invalid packet" in resp.json()["detail"]


def test_schema_mismatch_is_unprocessable():
    other = S.define_schema("Player", 2, PLAYER.root)
    resp = client.post("/player", content=packager.pack({"id": 1, "name": "m"}, other), headers=HEADERS)
    assert resp.status_code == 422
