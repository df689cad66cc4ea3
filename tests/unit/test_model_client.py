import json
import threading
from collections.abc import Callable

import httpx
import pytest

from clause_engine.config import ClientConfig, ModelSettings
from clause_engine.errors import (
    ConfigurationError,
    EmptyResponseError,
    MalformedResponseError,
    ModelCancelledError,
    ModelOverloadedError,
    ModelRequestError,
)
from clause_engine.llm.client import GeminiDecisionClient
from clause_engine.llm.schema import DecisionStatus

DECISION_TEXT = json.dumps(
    {
        "decision": "Rejected",
        "amount_payable": 0,
        "justification": "Nebulizer kits are listed in Annexure I as not payable.",
        "clauses": [{"clause_text": "Annexure I: Not Payable Items", "reasoning": "Explicit exclusion."}],
    }
)


def _envelope(text: str) -> dict[str, object]:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def _client(
    responses: list[httpx.Response],
    *,
    api_key: str | None = "test-key",
    config: ClientConfig | None = None,
) -> tuple[GeminiDecisionClient, list[httpx.Request], list[float]]:
    requests: list[httpx.Request] = []
    delays: list[float] = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return queue.pop(0)

    client = GeminiDecisionClient(
        ModelSettings(api_key=api_key, model="gemini-test", endpoint="https://models.example/v1beta"),
        config,
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=delays.append,
    )
    return client, requests, delays


def test_missing_api_key_fails_before_network() -> None:
    client, requests, _ = _client([], api_key=None)

    with pytest.raises(ConfigurationError):
        client.decide("prompt")
    assert requests == []


def test_request_shape() -> None:
    client, requests, delays = _client([httpx.Response(200, json=_envelope(DECISION_TEXT))])

    decision = client.decide("the prompt")

    assert decision.decision is DecisionStatus.REJECTED
    assert delays == []
    request = requests[0]
    assert str(request.url) == "https://models.example/v1beta/models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"
    body = json.loads(request.content)
    assert body["contents"] == [{"role": "user", "parts": [{"text": "the prompt"}]}]
    assert body["generationConfig"] == {"responseMimeType": "application/json", "candidateCount": 1}


def test_three_unavailable_then_success_backs_off_three_times() -> None:
    client, requests, delays = _client(
        [httpx.Response(503), httpx.Response(503), httpx.Response(503), httpx.Response(200, json=_envelope(DECISION_TEXT))]
    )

    decision = client.decide("prompt")

    assert decision.amount_payable == 0.0
    assert len(requests) == 4
    assert delays == [1.0, 2.0, 4.0]


def test_fourth_unavailable_exhausts_retries() -> None:
    client, requests, delays = _client([httpx.Response(503) for _ in range(4)])

    with pytest.raises(ModelOverloadedError) as exc_info:
        client.decide("prompt")

    assert len(requests) == 4
    assert delays == [1.0, 2.0, 4.0]
    assert exc_info.value.attempts == 4
    assert exc_info.value.last_status == 503
    assert "overloaded" in exc_info.value.user_message


def test_rate_limit_is_retried() -> None:
    client, requests, delays = _client([httpx.Response(429), httpx.Response(200, json=_envelope(DECISION_TEXT))])

    client.decide("prompt")

    assert len(requests) == 2
    assert delays == [1.0]


def test_retry_budget_is_configurable() -> None:
    client, requests, delays = _client(
        [httpx.Response(503), httpx.Response(503)],
        config=ClientConfig(max_retries=1, backoff_base=3.0),
    )

    with pytest.raises(ModelOverloadedError):
        client.decide("prompt")
    assert len(requests) == 2
    assert delays == [1.0]


def test_fatal_status_surfaces_immediately_with_body() -> None:
    client, requests, delays = _client([httpx.Response(400, text="API key not valid")])

    with pytest.raises(ModelRequestError) as exc_info:
        client.decide("prompt")

    assert len(requests) == 1
    assert delays == []
    assert exc_info.value.status_code == 400
    assert exc_info.value.body == "API key not valid"
    assert "400" in str(exc_info.value)


@pytest.mark.parametrize(
    "envelope",
    [{}, {"candidates": []}, {"candidates": [{"finishReason": "SAFETY"}]}, {"candidates": [{"content": {"parts": []}}]}],
)
def test_missing_candidate_is_empty_response(envelope: dict[str, object]) -> None:
    client, _, _ = _client([httpx.Response(200, json=envelope)])

    with pytest.raises(EmptyResponseError):
        client.decide("prompt")


def test_malformed_candidate_json(caplog: pytest.LogCaptureFixture) -> None:
    raw = '{"decision": "Approved", "justification": '
    client, _, delays = _client([httpx.Response(200, json=_envelope(raw))])

    with pytest.raises(MalformedResponseError) as exc_info:
        client.decide("prompt")

    assert exc_info.value.raw_text == raw
    assert delays == []
    assert raw in caplog.text


def test_non_json_envelope_is_malformed() -> None:
    client, _, _ = _client([httpx.Response(200, text="<html>gateway</html>")])

    with pytest.raises(MalformedResponseError):
        client.decide("prompt")


def test_non_utf8_envelope_is_malformed() -> None:
    client, _, _ = _client([httpx.Response(200, content=b'{"candidates": "\xff\xfe"}')])

    with pytest.raises(MalformedResponseError) as exc_info:
        client.decide("prompt")

    assert exc_info.value.raw_text


def test_timeout_is_a_request_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = GeminiDecisionClient(
        ModelSettings(api_key="k"),
        ClientConfig(timeout_seconds=0.5),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=lambda _: None,
    )

    with pytest.raises(ModelRequestError) as exc_info:
        client.decide("prompt")
    assert exc_info.value.status_code is None


def test_cancel_during_backoff_aborts() -> None:
    calls: list[int] = []
    holder: dict[str, GeminiDecisionClient] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(503)

    def cancelling_sleep(seconds: float) -> None:
        holder["client"].cancel()

    sleep: Callable[[float], None] = cancelling_sleep
    client = GeminiDecisionClient(
        ModelSettings(api_key="k"),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=sleep,
    )
    holder["client"] = client

    with pytest.raises(ModelCancelledError):
        client.decide("prompt")
    assert len(calls) == 1


def test_preset_cancel_event_stops_call_before_sending() -> None:
    client, requests, _ = _client([httpx.Response(200, json=_envelope(DECISION_TEXT))])
    cancelled = threading.Event()
    cancelled.set()

    with pytest.raises(ModelCancelledError):
        client.decide("prompt", cancel_event=cancelled)
    assert requests == []

    # The next call on the same client is unaffected.
    assert client.decide("prompt").decision is DecisionStatus.REJECTED
    assert len(requests) == 1


def test_cancel_event_only_aborts_its_own_call() -> None:
    other_call = threading.Event()
    client, requests, _ = _client([httpx.Response(503), httpx.Response(200, json=_envelope(DECISION_TEXT))])
    client._sleep = lambda _: other_call.set()

    decision = client.decide("prompt", cancel_event=threading.Event())

    assert decision.decision is DecisionStatus.REJECTED
    assert len(requests) == 2


def test_default_backoff_wait_ends_when_cancelled() -> None:
    cancelled = threading.Event()
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        cancelled.set()
        return httpx.Response(503)

    client = GeminiDecisionClient(
        ModelSettings(api_key="k"),
        ClientConfig(backoff_base=3600.0),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )

    with pytest.raises(ModelCancelledError):
        client.decide("prompt", cancel_event=cancelled)
    assert len(calls) == 1
    client.close()
