import json
from types import SimpleNamespace

import httpx
import pytest
from openai import OpenAIError

from webhook_chat import upstream
from webhook_chat.upstream import UpstreamError


def _transport(handler):
    return httpx.MockTransport(handler)


async def test_post_webhook_returns_json():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"Runtime_Prompt_Response": [{"content": "hi"}]}])

    data = await upstream.post_webhook({"first_message": "hello", "session_id": "s"}, transport=_transport(handler))

    assert data == [{"Runtime_Prompt_Response": [{"content": "hi"}]}]
    assert seen["body"]["first_message"] == "hello"


async def test_error_status_raises_upstream_error():
    transport = _transport(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(UpstreamError) as excinfo:
        await upstream.post_webhook({}, transport=transport)
    assert excinfo.value.status_code == 500
    assert excinfo.value.details == "boom"


async def test_empty_body_raises_upstream_error():
    transport = _transport(lambda request: httpx.Response(200, content=b"  "))
    with pytest.raises(UpstreamError, match="empty response"):
        await upstream.post_webhook({}, transport=transport)


async def test_invalid_json_raises_upstream_error():
    transport = _transport(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(UpstreamError, match="invalid JSON"):
        await upstream.post_webhook({}, transport=transport)


async def test_transport_failure_raises_upstream_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamError):
        await upstream.fetch_test_cases(transport=_transport(handler))


async def test_evaluate_posts_run_id():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"testcase_number": "1", "grade_pass": True}])

    await upstream.evaluate("run-7", transport=_transport(handler))

    assert seen["body"] == {"run_id": "run-7"}


async def test_run_batch_posts_payload():
    def handler(request):
        assert json.loads(request.content) == {"specific_ids": ["1"]}
        return httpx.Response(200, json=[{"TEST_RUN_ID": "r"}])

    assert await upstream.run_batch({"specific_ids": ["1"]}, transport=_transport(handler)) == [{"TEST_RUN_ID": "r"}]


class FakeModels:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    async def list(self):
        if self.error:
            raise self.error
        return self.result


async def test_fetch_models_returns_ids():
    page = SimpleNamespace(data=[SimpleNamespace(id="llama-3.3-70b"), SimpleNamespace(id="qwen-3-32b")])
    client = SimpleNamespace(models=FakeModels(result=page))
    assert await upstream.fetch_models(client) == ["llama-3.3-70b", "qwen-3-32b"]


async def test_fetch_models_failure():
    client = SimpleNamespace(models=FakeModels(error=OpenAIError("down")))
    with pytest.raises(UpstreamError):
        await upstream.fetch_models(client)
