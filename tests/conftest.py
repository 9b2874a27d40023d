import json
from collections import Counter

import httpx
import pytest

ENDPOINT = "https://backend.test/exec"
RELAY = "https://relay.test/get"
PAGE_ORIGIN = "https://page.test"


def route_of(request: httpx.Request) -> str:
    """Which strategy issued this request: relay, script or direct"""
    if request.url.host == "relay.test":
        return "relay"
    if "callback" in request.url.params:
        return "script"
    return "direct"


def readable_json(payload, status=200):
    return httpx.Response(
        status, json=payload, headers={"Access-Control-Allow-Origin": "*"}
    )


def opaque(status=200):
    # No Access-Control-Allow-Origin: the body exists but we may not read it
    return httpx.Response(status, json={"hidden": True})


def relay_envelope(contents, http_code=200):
    return httpx.Response(200, json={"contents": contents, "status": {"http_code": http_code}})


def script_reply(request: httpx.Request, payload):
    name = request.url.params["callback"]
    return httpx.Response(200, text=f"{name}({json.dumps(payload)});")


@pytest.fixture
def calls():
    """Counter of requests per route, filled in by handlers under test"""
    return Counter()
