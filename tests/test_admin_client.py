import json

import httpx
import pytest

from store.admin_client import AdminAPIClient
from store.errors import AuthError, RemoteUnavailable
from store.models import Resource

BASE = "https://shop.test/api"


def make_client(handler, token=None):
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url=BASE)
    return AdminAPIClient(BASE, token=token, http=http)


def test_login_stores_token():
    def handler(request):
        assert request.url.path == "/api/auth/login"
        assert json.loads(request.content) == {"password": "s3cret"}
        assert "authorization" not in request.headers
        return httpx.Response(200, json={"success": True, "token": "t" * 72, "expiresIn": 3600})

    client = make_client(handler)
    assert client.login("s3cret") == "t" * 72
    assert client.authenticated


def test_authenticated_calls_send_bearer_and_params():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "c1"})

    client = make_client(handler, token="abc")
    client.update_collection("c1", {"name": "Bridal"})

    request = seen[0]
    assert request.method == "PUT"
    assert request.headers["authorization"] == "Bearer abc"
    assert request.url.params["id"] == "c1"


def test_public_reads_need_no_token():
    client = make_client(lambda request: httpx.Response(200, json=[{"id": "p1"}]))
    assert client.list_records(Resource.PRODUCTS) == [{"id": "p1"}]


def test_write_without_token_is_refused_locally():
    client = make_client(lambda request: pytest.fail("request sent"))
    with pytest.raises(AuthError):
        client.save_batch({})


def test_expired_session_clears_token():
    client = make_client(lambda request: httpx.Response(401, json={"error": "Unauthorized. Please login."}), token="abc")
    with pytest.raises(AuthError, match="Session expired"):
        client.save_batch({"products": {"delete": ["p1"]}})
    assert client.token is None
    assert client.verify() is False


def test_server_error_message_is_forwarded_verbatim():
    client = make_client(
        lambda request: httpx.Response(409, json={"error": "Branch 'main' moved while saving"}), token="abc"
    )
    with pytest.raises(RemoteUnavailable) as exc:
        client.save_batch({})
    assert exc.value.message == "Branch 'main' moved while saving"
    assert exc.value.status_code == 409


def test_non_json_response_is_reported():
    client = make_client(lambda request: httpx.Response(502, text="<html>Bad gateway</html>"))
    with pytest.raises(RemoteUnavailable, match="Server error: 502"):
        client.get_content()


def test_upload_returns_files():
    files = [{"filename": "a.png", "path": "assets/images/a.png", "url": "u", "size": 3}]
    client = make_client(lambda request: httpx.Response(200, json={"success": True, "files": files}), token="abc")
    assert client.upload(["data:image/png;base64,AAAA"]) == files
