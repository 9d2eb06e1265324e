from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from .catalog import trading_view_symbol
from .errors import ClassifiedError
from .models import RiskTolerance, TradingStyle, UserProfile
from .service import Oracle


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="signaldesk.oracle", description="Consultas al oráculo IA")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logs de depuración")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("briefing", help="Resumen del mercado de las últimas 12h")

    signal = sub.add_parser("signal", help="Genera una señal para un activo")
    signal.add_argument("asset")
    signal.add_argument("--style", choices=[s.value for s in TradingStyle], default=TradingStyle.DAY_TRADER.value)
    signal.add_argument("--risk", choices=[r.value for r in RiskTolerance], default=RiskTolerance.MEDIUM.value)

    news = sub.add_parser("news", help="Noticias con sentimiento")
    news.add_argument("category", nargs="?", default="All")

    symbol = sub.add_parser("symbol", help="Símbolo del widget de gráficos para un activo")
    symbol.add_argument("asset")
    return parser


def main(argv: Optional[Sequence[str]] = None, oracle: Optional[Oracle] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    oracle = oracle or Oracle()
    try:
        if args.command == "briefing":
            result = {"briefing": oracle.request_briefing()}
        elif args.command == "signal":
            profile = UserProfile(trading_style=TradingStyle(args.style), risk_tolerance=RiskTolerance(args.risk))
            result = oracle.request_signal(args.asset, profile).to_dict()
        elif args.command == "news":
            result = {"articles": [a.to_dict() for a in oracle.request_news_batch(args.category)]}
        else:
            result = {"asset": args.asset, "symbol": trading_view_symbol(args.asset, oracle.catalog)}
    except ClassifiedError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
