"""Catálogo de activos y traducción a símbolos del widget de gráficos.

El catálogo es de solo lectura y se inyecta donde hace falta; `DEFAULT_ASSETS`
es la lista que usa la aplicación cuando no se configura otra.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Iterator, List, Optional

from .models import Asset, AssetCategory

DEFAULT_ASSETS: tuple[Asset, ...] = (
    Asset("Apple (AAPL)", AssetCategory.STOCKS),
    Asset("Microsoft (MSFT)", AssetCategory.STOCKS),
    Asset("Amazon (AMZN)", AssetCategory.STOCKS),
    Asset("Alphabet (GOOGL)", AssetCategory.STOCKS),
    Asset("Meta (META)", AssetCategory.STOCKS),
    Asset("Tesla (TSLA)", AssetCategory.STOCKS),
    Asset("NVIDIA (NVDA)", AssetCategory.STOCKS),
    Asset("Berkshire Hathaway (BRK.B)", AssetCategory.STOCKS),
    Asset("JPMorgan Chase (JPM)", AssetCategory.STOCKS),
    Asset("Visa (V)", AssetCategory.STOCKS),
    Asset("Exxon Mobil (XOM)", AssetCategory.STOCKS),
    Asset("EUR/USD", AssetCategory.FOREX),
    Asset("GBP/USD", AssetCategory.FOREX),
    Asset("USD/JPY", AssetCategory.FOREX),
    Asset("AUD/USD", AssetCategory.FOREX),
    Asset("USD/CHF", AssetCategory.FOREX),
    Asset("Gold (XAU/USD)", AssetCategory.COMMODITIES),
    Asset("Gold (XAU/EUR)", AssetCategory.COMMODITIES),
    Asset("Gold (XAU/JPY)", AssetCategory.COMMODITIES),
    Asset("Silver (XAG/USD)", AssetCategory.COMMODITIES),
    Asset("Silver (XAG/EUR)", AssetCategory.COMMODITIES),
    Asset("Crude Oil (USOIL)", AssetCategory.COMMODITIES),
    Asset("Natural Gas (XNG/USD)", AssetCategory.COMMODITIES),
    Asset("S&P 500 (INX)", AssetCategory.INDICES),
    Asset("NASDAQ 100 (NDX / US100)", AssetCategory.INDICES),
    Asset("Dow Jones (DJI / US30)", AssetCategory.INDICES),
    Asset("DAX 40 (GER40)", AssetCategory.INDICES),
    Asset("U.S. Dollar Index (DXY)", AssetCategory.INDICES),
    Asset("Bitcoin (BTCUSD)", AssetCategory.CRYPTO),
    Asset("Ethereum (ETHUSD)", AssetCategory.CRYPTO),
    Asset("Solana (SOLUSD)", AssetCategory.CRYPTO),
    Asset("XRP (XRPUSD)", AssetCategory.CRYPTO),
    Asset("Tether (USDTUSD)", AssetCategory.CRYPTO),
)

INITIAL_WATCHLIST: tuple[str, ...] = (
    "Gold (XAU/USD)",
    "Bitcoin (BTCUSD)",
    "EUR/USD",
    "NASDAQ 100 (NDX / US100)",
)

PRIORITY_SYMBOLS: Dict[str, str] = {
    "Gold (XAU/USD)": "OANDA:XAUUSD",
    "Silver (XAG/USD)": "OANDA:XAGUSD",
    "Tether (USDTUSD)": "USDTUSD",
    "NASDAQ 100 (NDX / US100)": "NASDAQ:NDX",
    "Dow Jones (DJI / US30)": "PEPPERSTONE:US30",
    "S&P 500 (INX)": "SPX",
    "U.S. Dollar Index (DXY)": "FXOPEN:DXY",
    "Gold (XAU/EUR)": "OANDA:XAUEUR",
    "Gold (XAU/JPY)": "OANDA:XAUJPY",
    "Silver (XAG/EUR)": "OANDA:XAGEUR",
    "Natural Gas (XNG/USD)": "NATURALGAS",
}

STOCK_EXCHANGES: Dict[str, str] = {
    "AAPL": "NASDAQ",
    "MSFT": "NASDAQ",
    "AMZN": "NASDAQ",
    "GOOGL": "NASDAQ",
    "META": "NASDAQ",
    "TSLA": "NASDAQ",
    "NVDA": "NASDAQ",
    "BRK.B": "NYSE",
    "JNJ": "NYSE",
    "JPM": "NYSE",
    "V": "NYSE",
    "WMT": "NYSE",
    "PG": "NYSE",
    "UNH": "NYSE",
    "XOM": "NYSE",
}

CATEGORY_PREFIX: Dict[AssetCategory, str] = {
    AssetCategory.CRYPTO: "BINANCE",
    AssetCategory.INDICES: "PEPPERSTONE",
    AssetCategory.COMMODITIES: "TVC",
}

_TICKER_RE = re.compile(r"\(([^)]+)\)")


class AssetCatalog:
    def __init__(self, assets: Iterable[Asset] = DEFAULT_ASSETS) -> None:
        self._assets: Dict[str, Asset] = {asset.name: asset for asset in assets}

    def __contains__(self, name: object) -> bool:
        return name in self._assets

    def __iter__(self) -> Iterator[Asset]:
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def get(self, name: str) -> Optional[Asset]:
        return self._assets.get(name)

    def category_of(self, name: str) -> Optional[AssetCategory]:
        asset = self._assets.get(name)
        return asset.category if asset else None

    def by_category(self, category: AssetCategory) -> List[Asset]:
        return [asset for asset in self._assets.values() if asset.category == category]

    def names(self) -> List[str]:
        return list(self._assets)


def trading_view_symbol(asset_name: str, catalog: AssetCatalog) -> str:
    if asset_name in PRIORITY_SYMBOLS:
        return PRIORITY_SYMBOLS[asset_name]
    asset = catalog.get(asset_name)
    if asset is None:
        return asset_name.replace("/", "")

    match = _TICKER_RE.search(asset_name)
    if match:
        symbol = match.group(1).split(" / ")[0].replace("/", "")
    else:
        symbol = asset_name.replace("/", "")

    if asset.category == AssetCategory.STOCKS:
        # acciones sin mapear van a NASDAQ
        return f"{STOCK_EXCHANGES.get(symbol, 'NASDAQ')}:{symbol}"
    prefix = CATEGORY_PREFIX.get(asset.category)
    return f"{prefix}:{symbol}" if prefix else symbol
