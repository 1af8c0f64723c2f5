import asyncio
import json

import httpx
import pytest

from resume_analyzer.client import (
    SETUP_FAILURE_MESSAGE,
    AnalyzerClient,
    Identity,
    provision_user,
)
from resume_analyzer.main import app

IDENTITY = Identity(id="user-9", email="nine@example.com", name="Nine")


class SignOut:
    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("session already gone")


def _run(coro):
    return asyncio.run(coro)


@pytest.fixture
def asgi_client(client):
    """AnalyzerClient talking to the app in-process, with the same fakes as `client`."""
    return AnalyzerClient(base_url="http://testserver", transport=httpx.ASGITransport(app=app))


def test_identity_from_auth_user_prefers_full_name():
    identity = Identity.from_auth_user({
        "id": "u1",
        "email": "u1@example.com",
        "user_metadata": {"full_name": "Full Name", "name": "Short", "picture": "https://pic"},
    })
    assert identity.name == "Full Name"
    assert identity.avatar_url == "https://pic"


def test_identity_from_auth_user_without_metadata():
    identity = Identity.from_auth_user({"id": "u1", "email": "u1@example.com"})
    assert identity.name is None and identity.avatar_url is None


def test_provision_user_success(asgi_client, fake_db):
    sign_out = SignOut()

    async def scenario():
        async with asgi_client as api:
            return await provision_user(api, IDENTITY, sign_out)

    result = _run(scenario())

    assert result.ok
    assert result.user["email"] == "nine@example.com"
    assert sign_out.calls == 0
    assert [r["id"] for r in fake_db.tables["users"]] == ["user-9"]


def test_provision_user_signs_out_when_save_fails(asgi_client, fake_db):
    fake_db.failures.add(("users", "upsert"))
    sign_out = SignOut()

    async def scenario():
        async with asgi_client as api:
            return await provision_user(api, IDENTITY, sign_out)

    result = _run(scenario())

    assert not result.ok
    assert result.message == SETUP_FAILURE_MESSAGE
    assert sign_out.calls == 1


def test_provision_user_signs_out_when_row_missing():
    def handler(request):
        if request.url.path.endswith("/save-user"):
            return httpx.Response(200, json={"success": True, "user": json.loads(request.content)})
        return httpx.Response(404, json={"detail": "User not found"})

    sign_out = SignOut(fail=True)

    async def scenario():
        async with AnalyzerClient("http://api", transport=httpx.MockTransport(handler)) as api:
            return await provision_user(api, IDENTITY, sign_out)

    result = _run(scenario())

    assert not result.ok
    assert sign_out.calls == 1


def test_provision_user_handles_unreachable_api():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    sign_out = SignOut()

    async def scenario():
        async with AnalyzerClient("http://api", transport=httpx.MockTransport(handler)) as api:
            return await provision_user(api, IDENTITY, sign_out)

    result = _run(scenario())

    assert not result.ok
    assert sign_out.calls == 1


def test_check_admin_is_false_on_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"detail": "boom"}))

    async def scenario():
        async with AnalyzerClient("http://api", transport=transport) as api:
            return await api.check_admin("anyone")

    assert _run(scenario()) is False


def test_analyze_latest_resume_end_to_end(asgi_client, store, fake_db, llm):
    store.upsert_user("user-1", "u@example.com")

    async def scenario():
        async with asgi_client as api:
            await api.upload_resume("user-1", "cv.txt", b"Python and FastAPI", "text/plain")
            result = await api.analyze_latest_resume("user-1", "Looking for Python")
            recent = await api.recent_analyses("user-1")
            return result, recent

    result, recent = _run(scenario())

    assert result["success"] is True
    assert result["analysis"]["skillsMatchPercentage"] == 82
    assert len(recent) == 1
    assert recent[0]["job_descriptions"]["content_raw"] == "Looking for Python"
    assert "Resume:\nPython and FastAPI" in llm.last_body["messages"][1]["content"]


def test_analyze_latest_resume_without_resume(asgi_client):
    async def scenario():
        async with asgi_client as api:
            await api.analyze_latest_resume("user-1", "JD")

    with pytest.raises(LookupError):
        _run(scenario())
