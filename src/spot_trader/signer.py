"""
주문 서명 모듈

Binance SIGNED 엔드포인트용 시장가 주문 문자열을 만들고 HMAC-SHA256으로 서명합니다.

교육 포인트:
    - 서버는 받은 쿼리 문자열 그대로 HMAC을 다시 계산해 비교
    - 따라서 필드 순서와 바이트 하나까지 서명한 문자열과 동일해야 함
    - timestamp + recvWindow: 요청이 유효한 시간 창 (리플레이 방지)
"""

import hashlib
import hmac
from urllib.parse import urlencode

from .errors import SignatureError
from .quote import Side, format_decimal, parse_decimal


DEFAULT_RECV_WINDOW = 5000  # ms


def build_order_query(
    symbol_pair: str,
    side: Side,
    owned_amount: str,
    server_timestamp: int,
    recv_window: int = DEFAULT_RECV_WINDOW,
) -> str:
    """
    서명 전 주문 쿼리 문자열 생성

    필드 순서 (고정):
        symbol, side, type, quantity|quoteOrderQty, recvWindow, timestamp

    예시:
        symbol=ETHUSDT&side=SELL&type=MARKET&quantity=1.5&recvWindow=5000&timestamp=1672531200000

    Raises:
        InvalidAmount: owned_amount가 십진수 문자열이 아닌 경우
        SignatureError: timestamp/recv_window가 음이 아닌 정수가 아닌 경우
    """
    if not isinstance(side, Side):
        raise TypeError(f"side must be a Side, got {side!r}")
    _require_non_negative_int("server_timestamp", server_timestamp)
    _require_non_negative_int("recv_window", recv_window)
    amount = format_decimal(parse_decimal(owned_amount))

    params = [
        ("symbol", symbol_pair.upper()),
        ("side", side.order_side),
        ("type", "MARKET"),
        (side.amount_field, amount),
        ("recvWindow", recv_window),
        ("timestamp", server_timestamp),
    ]
    return urlencode(params)


def sign(query: str, secret_key: str) -> str:
    """
    쿼리 문자열의 HMAC-SHA256 hex digest

    빈 secret_key도 서명은 생성됨 (인증은 실패). 키 검증은 호출자 책임.
    """
    if not isinstance(secret_key, str):
        raise SignatureError(f"secret key must be a string, got {type(secret_key).__name__}")
    return hmac.new(
        secret_key.encode("utf-8"),
        query.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def build_signed_order(
    symbol_pair: str,
    side: Side,
    owned_amount: str,
    server_timestamp: int,
    secret_key: str,
    recv_window: int = DEFAULT_RECV_WINDOW,
) -> str:
    """
    서명된 시장가 주문 문자열

    Returns:
        "<unsigned query>&signature=<hex>"

    교육 포인트:
        - 같은 입력이면 항상 같은 문자열 (결정적)
        - 서명 대상은 signature 필드를 제외한 앞부분 전체
    """
    query = build_order_query(symbol_pair, side, owned_amount, server_timestamp, recv_window)
    return f"{query}&signature={sign(query, secret_key)}"


def split_signed(signed: str) -> tuple[str, str]:
    """서명된 문자열 → (서명 전 쿼리, signature)"""
    query, sep, signature = signed.rpartition("&signature=")
    if not sep:
        raise SignatureError("signed request has no signature field")
    return query, signature


def verify_signature(signed: str, secret_key: str) -> bool:
    """서명 재계산 후 상수 시간 비교"""
    query, signature = split_signed(signed)
    return hmac.compare_digest(sign(query, secret_key), signature)


def _require_non_negative_int(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SignatureError(f"{name} must be a non-negative integer, got {value!r}")
