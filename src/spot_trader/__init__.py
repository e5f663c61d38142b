"""Spot Trader - Binance Book Ticker Stream & Signed Market Orders"""

__version__ = "0.1.0"

# Errors
from .errors import (
    SpotTraderError,
    InvalidAmount,
    MalformedMarketData,
    InsufficientLiquidity,
    NetworkError,
    SignatureError,
    NotConnected,
)

# Quote
from .quote import Side, Quote, QuoteBook

# Signer
from .signer import build_order_query, build_signed_order, sign, verify_signature

# Stream
from .stream import MarketDataSession, SessionState

# Execution
from .execution import ExecutionClient

# Config
from .config import ClientConfig, Credentials

__all__ = [
    # Errors
    "SpotTraderError",
    "InvalidAmount",
    "MalformedMarketData",
    "InsufficientLiquidity",
    "NetworkError",
    "SignatureError",
    "NotConnected",
    # Quote
    "Side",
    "Quote",
    "QuoteBook",
    # Signer
    "build_order_query",
    "build_signed_order",
    "sign",
    "verify_signature",
    # Stream
    "MarketDataSession",
    "SessionState",
    # Execution
    "ExecutionClient",
    # Config
    "ClientConfig",
    "Credentials",
]
