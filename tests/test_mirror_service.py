import base64
import json

import httpx
import pytest

from services.mirror_service import GitHubMirror, MirrorConflictError, MirrorError


def _encoded(items):
    return base64.b64encode(json.dumps(items).encode("utf-8")).decode("ascii")


def _mirror(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://api.github.com")
    return GitHubMirror(repo="me/finance-data", path="data.json", branch="main", token="t0ken", client=client)


def test_append_writes_back_with_sha():
    requests = []

    def handler(request):
        requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"content": _encoded([{"id": "a"}]), "sha": "abc123"})
        return httpx.Response(200, json={})

    _mirror(handler).append({"id": "b", "description": "午餐"})

    get, put = requests
    assert get.url.path == "/repos/me/finance-data/contents/data.json"
    assert get.url.params["ref"] == "main"
    body = json.loads(put.content)
    assert body["sha"] == "abc123"
    assert body["branch"] == "main"
    written = json.loads(base64.b64decode(body["content"]).decode("utf-8"))
    assert written == [{"id": "a"}, {"id": "b", "description": "午餐"}]


def test_missing_file_is_created_without_sha():
    bodies = []

    def handler(request):
        if request.method == "GET":
            return httpx.Response(404)
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={})

    _mirror(handler).append({"id": "first"})

    assert "sha" not in bodies[0]
    assert json.loads(base64.b64decode(bodies[0]["content"])) == [{"id": "first"}]


@pytest.mark.parametrize("status", [409, 422])
def test_stale_sha_raises_conflict(status):
    def handler(request):
        if request.method == "GET":
            return httpx.Response(200, json={"content": _encoded([]), "sha": "old"})
        return httpx.Response(status)

    with pytest.raises(MirrorConflictError):
        _mirror(handler).append({"id": "x"})


def test_non_array_file_is_an_error():
    def handler(request):
        return httpx.Response(200, json={"content": _encoded({"not": "a list"}), "sha": "s"})

    with pytest.raises(MirrorError):
        _mirror(handler).read()


def test_try_append_swallows_failures():
    def handler(request):
        return httpx.Response(500)

    assert _mirror(handler).try_append({"id": "x"}) is False


def test_try_append_is_a_no_op_when_disabled(disabled_mirror):
    assert disabled_mirror.enabled is False
    assert disabled_mirror.try_append({"id": "x"}) is False
