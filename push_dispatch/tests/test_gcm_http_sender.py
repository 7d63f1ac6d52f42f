"""Tests for HttpGCMSender against a mocked gateway (httpx.MockTransport)."""

import json

import httpx
import pytest

from push_dispatch.domain.push.errors import GCMTransportError
from push_dispatch.infrastructure.notifications.gcm_http_sender import HttpGCMSender, to_wire_body

ENDPOINT = "https://gcm.test/fcm/send"
PAYLOAD = {
    "priority": "high",
    "timeToLive": 60,
    "data": {"push_id": "pushId", "time": "2016-02-03T22:33:42.113Z", "data": {"alert": "alert"}},
}


def ok_entry(token):
    return {"message_id": f"m-{token}", "registration_id": token}


def make_sender(handler, api_key="apiKey"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpGCMSender(api_key, endpoint=ENDPOINT, backoff_initial=0, client=client)


class Gateway:
    """Scripted gateway: pops one responder per request and records bodies."""

    def __init__(self, *responders):
        self.responders = list(responders)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append((request, body))
        responder = self.responders.pop(0)
        return responder(body)


def answer_all(body):
    return httpx.Response(
        200,
        json={"multicast_id": 42, "results": [ok_entry(t) for t in body["registration_ids"]]},
    )


def test_wire_body_renames_time_to_live():
    body = to_wire_body(PAYLOAD, ["a", "b"])

    assert body["registration_ids"] == ["a", "b"]
    assert body["time_to_live"] == 60
    assert "timeToLive" not in body
    assert body["data"] == PAYLOAD["data"]
    assert body["priority"] == "high"


class TestHttpGCMSender:

    @pytest.mark.asyncio
    async def test_posts_batch_with_api_key(self):
        gateway = Gateway(answer_all)
        sender = make_sender(gateway)

        response = await sender.send(PAYLOAD, ["t1", "t2"], 5)

        request, body = gateway.requests[0]
        assert request.url == ENDPOINT
        assert request.headers["Authorization"] == "key=apiKey"
        assert body["registration_ids"] == ["t1", "t2"]
        assert response["multicast_id"] == 42
        assert response["success"] == 2
        assert response["failure"] == 0
        assert response["results"] == [ok_entry("t1"), ok_entry("t2")]

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        gateway = Gateway(lambda body: httpx.Response(503), answer_all)
        sender = make_sender(gateway)

        response = await sender.send(PAYLOAD, ["t1"], 5)

        assert len(gateway.requests) == 2
        assert response["results"] == [ok_entry("t1")]

    @pytest.mark.asyncio
    async def test_gives_up_after_retry_budget(self):
        gateway = Gateway(*[lambda body: httpx.Response(500)] * 3)
        sender = make_sender(gateway)

        with pytest.raises(GCMTransportError) as exc:
            await sender.send(PAYLOAD, ["t1"], 2)

        assert exc.value.code == "Unavailable"
        assert exc.value.status_code == 500
        assert len(gateway.requests) == 3

    @pytest.mark.asyncio
    async def test_authentication_failure_is_not_retried(self):
        gateway = Gateway(lambda body: httpx.Response(401, text="Unauthorized"))
        sender = make_sender(gateway)

        with pytest.raises(GCMTransportError) as exc:
            await sender.send(PAYLOAD, ["t1"], 5)

        assert exc.value.code == "AuthenticationError"
        assert len(gateway.requests) == 1

    @pytest.mark.asyncio
    async def test_bad_request_is_not_retried(self):
        gateway = Gateway(lambda body: httpx.Response(400, text="bad json"))
        sender = make_sender(gateway)

        with pytest.raises(GCMTransportError) as exc:
            await sender.send(PAYLOAD, ["t1"], 5)

        assert exc.value.code == "InvalidRequest"
        assert len(gateway.requests) == 1

    @pytest.mark.asyncio
    async def test_network_errors_are_retried_then_raised(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        sender = make_sender(handler)

        with pytest.raises(GCMTransportError) as exc:
            await sender.send(PAYLOAD, ["t1"], 1)

        assert exc.value.code == "NetworkError"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_resubmits_only_unavailable_tokens(self):
        def first(body):
            return httpx.Response(200, json={
                "multicast_id": 7,
                "results": [ok_entry("t1"), {"error": "Unavailable"}, {"error": "InvalidRegistration"}],
            })

        gateway = Gateway(first, answer_all)
        sender = make_sender(gateway)

        response = await sender.send(PAYLOAD, ["t1", "t2", "t3"], 5)

        assert gateway.requests[1][1]["registration_ids"] == ["t2"]
        assert response["multicast_id"] == 7
        assert response["results"] == [
            ok_entry("t1"),
            ok_entry("t2"),
            {"error": "InvalidRegistration"},
        ]
        assert response["success"] == 2
        assert response["failure"] == 1

    @pytest.mark.asyncio
    async def test_failed_resubmission_keeps_first_results(self):
        def first(body):
            return httpx.Response(200, json={
                "multicast_id": 7,
                "results": [ok_entry("t1"), {"error": "Unavailable"}],
            })

        gateway = Gateway(first, lambda body: httpx.Response(401))
        sender = make_sender(gateway)

        response = await sender.send(PAYLOAD, ["t1", "t2"], 5)

        assert response["results"] == [ok_entry("t1"), {"error": "Unavailable"}]
        assert len(gateway.requests) == 2

    @pytest.mark.asyncio
    async def test_non_json_reply_is_retried_then_raised(self):
        gateway = Gateway(*[lambda body: httpx.Response(200, text="<html>oops</html>")] * 2)
        sender = make_sender(gateway)

        with pytest.raises(GCMTransportError) as exc:
            await sender.send(PAYLOAD, ["t1"], 1)

        assert exc.value.code == "InvalidResponse"
        assert exc.value.status_code == 200
        assert len(gateway.requests) == 2

    @pytest.mark.asyncio
    async def test_non_json_reply_then_success(self):
        gateway = Gateway(lambda body: httpx.Response(200, text="not json"), answer_all)
        sender = make_sender(gateway)

        response = await sender.send(PAYLOAD, ["t1", "t2"], 5)

        assert response["results"] == [ok_entry("t1"), ok_entry("t2")]

    @pytest.mark.asyncio
    async def test_non_object_json_reply_is_invalid(self):
        gateway = Gateway(lambda body: httpx.Response(200, json=["nope"]))
        sender = make_sender(gateway)

        with pytest.raises(GCMTransportError) as exc:
            await sender.send(PAYLOAD, ["t1"], 0)

        assert exc.value.code == "InvalidResponse"
