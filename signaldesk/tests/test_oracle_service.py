from __future__ import annotations

from datetime import datetime, timezone

import pytest

from signaldesk.oracle.catalog import AssetCatalog
from signaldesk.oracle.config import OracleConfig
from signaldesk.oracle.errors import USER_MESSAGES, BackendError, ClassifiedError, ErrorCategory
from signaldesk.oracle.models import (
    Asset,
    AssetCategory,
    ChatRole,
    ChatTurn,
    Direction,
    GenerationResponse,
    RiskTolerance,
    TradingStyle,
    UserProfile,
)
from signaldesk.oracle.service import Oracle

FIXED_NOW = datetime(2025, 6, 2, 9, 30, tzinfo=timezone.utc)

SIGNAL_TEXT = (
    "Here is the result:\n```json\n"
    '{"direction":"sell","confidence":80,"entryPrice":"3320.1","tp1":"3309.6","tp2":"3304.9","sl":"3328.5",'
    '"rsi":{"value":71.2,"interpretation":"Overbought"},"strategyDescription":"Fade the spike [1].","riskTip":"CPI [2].",}\n```'
)


class ScriptedClient:
    """Devuelve (o lanza) cada elemento del guion en orden."""

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    def generate(self, request):
        self.requests.append(request)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


def make_oracle(client, sleeps=None, max_retries=3):
    sleeps = sleeps if sleeps is not None else []
    return Oracle(
        config=OracleConfig(api_key="test", max_retries=max_retries, base_delay=1.0),
        client=client,
        catalog=AssetCatalog([Asset("Gold (XAU/USD)", AssetCategory.COMMODITIES)]),
        sleep=sleeps.append,
        rng=lambda: 0.0,
        clock=lambda: FIXED_NOW,
    )


def text_response(text, chunks=()):
    return GenerationResponse(text=text, grounding_chunks=tuple(chunks), candidates=1)


def test_request_signal_extracts_and_normalizes():
    chunks = [{"web": {"title": "missing uri"}}, {"web": {"title": "Kitco", "uri": "https://www.kitco.com/gold"}}]
    client = ScriptedClient(text_response(SIGNAL_TEXT, chunks))
    oracle = make_oracle(client)
    profile = UserProfile(TradingStyle.SCALPER, RiskTolerance.LOW)

    signal = oracle.request_signal("Gold (XAU/USD)", profile)

    assert signal.direction is Direction.SELL
    assert signal.confidence == 80
    assert signal.asset_name == "Gold (XAU/USD)"
    assert signal.update_time == FIXED_NOW
    assert [s.uri for s in signal.sources] == ["https://www.kitco.com/gold"]
    request = client.requests[0]
    assert request.model == "gemini-2.5-flash"
    assert request.web_search is True
    assert "Gold (XAU/USD) (Commodities)" in request.contents
    assert "Trading Style: Scalper" in request.contents
    assert "Risk Tolerance: Low" in request.contents


def test_request_signal_survives_three_rate_limits():
    sleeps: list[float] = []
    rate_limited = BackendError(429, "RESOURCE_EXHAUSTED", "quota")
    client = ScriptedClient(rate_limited, rate_limited, rate_limited, text_response(SIGNAL_TEXT))
    signal = make_oracle(client, sleeps).request_signal("Gold (XAU/USD)")
    assert signal.direction is Direction.SELL
    assert len(client.requests) == 4
    assert sleeps == [1.0, 2.0, 4.0]


def test_permission_denied_on_every_attempt_is_classified():
    sleeps: list[float] = []
    client = ScriptedClient(BackendError(403, "PERMISSION_DENIED", "API key not valid"))
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client, sleeps).request_signal("Gold (XAU/USD)")
    assert excinfo.value.category is ErrorCategory.PERMISSION_DENIED
    assert excinfo.value.message == USER_MESSAGES[ErrorCategory.PERMISSION_DENIED]
    assert len(client.requests) == 4
    assert len(sleeps) == 3


def test_empty_response_is_classified_without_extraction(monkeypatch):
    import signaldesk.oracle.service as service_module

    def fail_extract(_text):
        raise AssertionError("extraction must not run")

    monkeypatch.setattr(service_module, "extract_structured", fail_extract)
    client = ScriptedClient(GenerationResponse())
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client, max_retries=1).request_signal("Gold (XAU/USD)")
    assert excinfo.value.category is ErrorCategory.EMPTY_RESPONSE


def test_blocked_response_with_candidate_but_no_text_is_empty():
    client = ScriptedClient(GenerationResponse(candidates=1, finish_reason="SAFETY"))
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client).request_signal("Gold (XAU/USD)")
    assert excinfo.value.category is ErrorCategory.EMPTY_RESPONSE
    assert len(client.requests) == 1


def test_unparseable_signal_is_malformed_and_hides_raw_text():
    client = ScriptedClient(text_response('{"direction": "BUY", "note": "bad "quote""}'))
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client).request_signal("Gold (XAU/USD)")
    assert excinfo.value.category is ErrorCategory.MALFORMED_PAYLOAD
    assert "quote" not in excinfo.value.message


def test_unknown_asset_is_requested_without_category():
    client = ScriptedClient(text_response('{"direction": "BUY", "confidence": 90}'))
    signal = make_oracle(client).request_signal("Dogecoin (DOGEUSD)")
    assert signal.direction is Direction.BUY
    assert "Dogecoin (DOGEUSD)." in client.requests[0].contents


def test_request_news_batch_keeps_order():
    text = '```json\n{"articles": [{"title": "one", "sentiment": "Bullish"}, {"title": "two", "sentiment": "Bearish"},]}\n```'
    client = ScriptedClient(text_response(text))
    articles = make_oracle(client).request_news_batch("Crypto")
    assert [a.title for a in articles] == ["one", "two"]
    assert "about Crypto" in client.requests[0].contents
    assert client.requests[0].model == "gemini-2.5-pro"


def test_request_news_all_uses_general_topic():
    client = ScriptedClient(text_response('{"articles": []}'))
    assert make_oracle(client).request_news_batch() == []
    assert "general financial markets" in client.requests[0].contents


def test_request_news_missing_articles_is_missing_field():
    client = ScriptedClient(text_response('{"items": []}'))
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client).request_news_batch("Forex")
    assert excinfo.value.category is ErrorCategory.MISSING_FIELD


def test_request_briefing_trims_text():
    client = ScriptedClient(text_response("  Markets were calm overnight.  \n"))
    assert make_oracle(client).request_briefing() == "Markets were calm overnight."
    assert client.requests[0].web_search is True


def test_request_briefing_transport_error_is_unknown():
    client = ScriptedClient(ConnectionError("connection reset by peer"))
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client, max_retries=0).request_briefing()
    assert excinfo.value.category is ErrorCategory.UNKNOWN
    assert "market briefing" in excinfo.value.message


def test_request_chat_reply_does_not_mutate_history():
    client = ScriptedClient(text_response(SIGNAL_TEXT))
    oracle = make_oracle(client)
    signal = oracle.request_signal("Gold (XAU/USD)")

    client.script = [text_response("  Because RSI is above 70.  ")]
    history = [ChatTurn(ChatRole.USER, "Why sell?"), ChatTurn(ChatRole.MODEL, "Momentum is fading.")]
    reply = oracle.request_chat_reply(history, "Why overbought?", signal)

    assert reply == ChatTurn(ChatRole.MODEL, "Because RSI is above 70.")
    assert len(history) == 2
    request = client.requests[-1]
    assert [t.text for t in request.contents] == ["Why sell?", "Momentum is fading.", "Why overbought?"]
    assert request.contents[-1].role is ChatRole.USER
    assert "Gold (XAU/USD)" in request.system_instruction
    assert "**Direction:** SELL" in request.system_instruction


def test_request_chat_rate_limited_is_classified():
    client = ScriptedClient(RuntimeError("429 Too Many Requests"))
    signal_client = ScriptedClient(text_response(SIGNAL_TEXT))
    signal = make_oracle(signal_client).request_signal("Gold (XAU/USD)")
    with pytest.raises(ClassifiedError) as excinfo:
        make_oracle(client, max_retries=0).request_chat_reply([], "hello", signal)
    assert excinfo.value.category is ErrorCategory.RATE_LIMITED
