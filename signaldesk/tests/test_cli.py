from __future__ import annotations

import json
from datetime import datetime, timezone

from signaldesk.oracle.__main__ import main
from signaldesk.oracle.catalog import AssetCatalog
from signaldesk.oracle.errors import ClassifiedError, ErrorCategory, user_message
from signaldesk.oracle.models import Direction, NewsArticle, Sentiment, TradingSignal


class DummyOracle:
    def __init__(self, error=None):
        self.catalog = AssetCatalog()
        self.error = error
        self.profile = None

    def request_briefing(self):
        if self.error:
            raise self.error
        return "Quiet night."

    def request_signal(self, asset_name, profile=None):
        self.profile = profile
        return TradingSignal(
            asset_name=asset_name,
            update_time=datetime(2025, 1, 1, tzinfo=timezone.utc),
            direction=Direction.BUY,
            confidence=90,
        )

    def request_news_batch(self, category="All"):
        return [NewsArticle("t", "s", "u", "src", Sentiment.NEUTRAL, "i")]


def test_briefing_prints_json(capsys):
    assert main(["briefing"], oracle=DummyOracle()) == 0
    assert json.loads(capsys.readouterr().out) == {"briefing": "Quiet night."}


def test_signal_passes_profile(capsys):
    oracle = DummyOracle()
    assert main(["signal", "EUR/USD", "--style", "Scalper", "--risk", "Low"], oracle=oracle) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["assetName"] == "EUR/USD"
    assert payload["updateTime"] == "2025-01-01T00:00:00Z"
    assert oracle.profile.trading_style.value == "Scalper"
    assert oracle.profile.risk_tolerance.value == "Low"


def test_news_and_symbol(capsys):
    assert main(["news", "Crypto"], oracle=DummyOracle()) == 0
    assert json.loads(capsys.readouterr().out)["articles"][0]["sentiment"] == "Neutral"
    assert main(["symbol", "Bitcoin (BTCUSD)"], oracle=DummyOracle()) == 0
    assert json.loads(capsys.readouterr().out)["symbol"] == "BINANCE:BTCUSD"


def test_classified_error_exits_with_message(capsys):
    error = ClassifiedError(ErrorCategory.RATE_LIMITED, user_message(ErrorCategory.RATE_LIMITED))
    assert main(["briefing"], oracle=DummyOracle(error)) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "high demand" in captured.err
