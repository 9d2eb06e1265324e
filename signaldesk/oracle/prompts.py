from __future__ import annotations

from typing import Optional

from .models import AssetCategory, TradingSignal, UserProfile

JSON_RULES = """\
JSON formatting rules (critical):
- All keys and string values must be enclosed in double quotes.
- Double quotes inside a string value must be escaped with a backslash.
- Use the \\n sequence for new lines inside strings.
- Do not use trailing commas and do not include comments."""

SIGNAL_SCHEMA = """\
{
  "direction": "'SELL' or 'BUY' (uppercase)",
  "confidence": "integer between 70 and 95",
  "entryPrice": "string, very close to the real-time price you fetched",
  "tp1": "string, first take profit price",
  "tp2": "string, second take profit price",
  "sl": "string, stop loss price",
  "pivotPoints": {"r2": "string", "r1": "string", "pivot": "string", "s1": "string", "s2": "string"},
  "rsi": {"value": "number, 14-period RSI", "interpretation": "one of 'Overbought', 'Oversold', 'Neutral'"},
  "sma": {"sma20": "string", "sma50": "string", "sma100": "string"},
  "strategyDescription": "string, 3-4 paragraphs citing the web sources as [1] or [2, 3]",
  "riskTip": "string, 1-2 paragraphs about the risks, with citations"
}"""

NEWS_SCHEMA = """\
{
  "articles": [
    {
      "title": "string",
      "snippet": "string, 1-2 sentences",
      "url": "string, direct URL to the article",
      "sourceName": "string, e.g. 'Reuters'",
      "sentiment": "'Bullish', 'Bearish' or 'Neutral'",
      "impactSummary": "string, one sentence about the market impact"
    }
  ]
}"""


def briefing_prompt() -> str:
    return (
        "Provide a concise yet comprehensive overview of the global financial market sentiment "
        "and key events over the last 12 hours. Your analysis MUST be based on real-time web data.\n"
        "Cover major indices (e.g. S&P 500, Nasdaq), cryptocurrencies (e.g. Bitcoin) and commodities "
        "(e.g. Gold, Crude Oil). Mention key drivers such as central bank signals, economic data "
        "releases and geopolitical events. Keep a professional, analytical and neutral tone.\n"
        "This is for informational and educational purposes ONLY.\n"
        "Return ONLY the raw text of the briefing: no title, no markdown, a single block of plain text."
    )


def signal_prompt(asset_name: str, profile: UserProfile, category: Optional[AssetCategory] = None) -> str:
    asset_line = f"{asset_name} ({category.value})" if category else asset_name
    return (
        f"Conduct a deep multi-dimensional trading analysis for {asset_line}.\n"
        "The analysis MUST be tailored to this trader profile:\n"
        f"- Trading Style: {profile.trading_style.value}\n"
        f"- Risk Tolerance: {profile.risk_tolerance.value}\n"
        "A 'Low' risk tolerance requires tighter stop-losses and conservative targets; a 'Scalper' "
        "style focuses on very short-term price movements.\n"
        "First search the web for the current real-time market price of the asset and anchor "
        "entryPrice, tp1, tp2 and sl to it. Synthesize several reliable financial sources, none "
        "older than 12 hours.\n"
        "This request is for informational and educational purposes ONLY and is not financial advice.\n"
        "Respond with a single raw, valid JSON object and nothing else.\n\n"
        f"{JSON_RULES}\n\n"
        f"The JSON object must follow this structure:\n{SIGNAL_SCHEMA}"
    )


def news_topic(category: str | None) -> str:
    if not category or category == "All":
        return "general financial markets"
    return category


def news_prompt(category: str | None, count: int = 5) -> str:
    return (
        f"You are a financial news analyst. Find {count} recent and relevant news articles about "
        f"{news_topic(category)}. Use real-time web data no older than 24 hours.\n"
        "For each article give the title, a 1-2 sentence snippet, the source URL, the source name, "
        "the sentiment for the relevant market ('Bullish', 'Bearish' or 'Neutral') and a one-sentence "
        "summary of the potential market impact.\n"
        "This request is for informational and educational purposes ONLY.\n"
        "Respond with a single raw, valid JSON object and nothing else. The root object must have "
        "a key named \"articles\" holding the array of articles.\n\n"
        f"{JSON_RULES}\n\n"
        f"The JSON object must follow this structure:\n{NEWS_SCHEMA}"
    )


def chat_instruction(signal: TradingSignal) -> str:
    return (
        "You are a helpful AI trading analyst. The user has just generated the following trading "
        f"signal analysis for {signal.asset_name}:\n\n"
        "## Analysis Summary\n"
        f"- **Direction:** {signal.direction.value}\n"
        f"- **Strategy:** {signal.strategy_description}\n"
        f"- **Risk Tip:** {signal.risk_tip}\n\n"
        "Answer the user's follow-up questions about this specific analysis. Be concise, helpful and "
        "stay on topic. Do not provide financial advice. Use web search if needed to answer questions "
        "about recent events related to the asset."
    )
