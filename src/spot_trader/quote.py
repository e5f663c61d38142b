"""
Quote 모듈

거래쌍 하나의 최우선 매수/매도 호가(Best Bid/Ask)를 보관하고,
그 잔량을 기준으로 시장가 주문의 규모를 계산합니다.
교육 목적으로 상세한 주석을 포함합니다.
"""

import json
import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from enum import Enum
from typing import Optional, Union

from .errors import InsufficientLiquidity, InvalidAmount, MalformedMarketData


# 거래소 lot size 관례: 소수점 8자리
TRADE_PRECISION = Decimal("0.00000001")

# 곱셈은 정확하게, 나눗셈은 충분한 자릿수로 계산 후 절사
_CALC_PRECISION = 60

# 시장 데이터가 아직 없음을 나타내는 초기값
SENTINEL_PRICE = "1.000000"
SENTINEL_QTY = "-1.000000"

# 부호, 정수부/소수부, 지수부만 허용 (ASCII 숫자만)
_DECIMAL_PATTERN = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


class Side(Enum):
    """
    보유 자산 방향

    교육 포인트:
        - BASE: base 자산(ETHUSDT의 ETH)을 보유 → Best Bid에 매도 (SELL)
        - QUOTE: quote 자산(ETHUSDT의 USDT)을 보유 → Best Ask에서 매수 (BUY)
    """
    BASE = "BASE"
    QUOTE = "QUOTE"

    @property
    def order_side(self) -> str:
        """거래소 주문 방향"""
        return "SELL" if self is Side.BASE else "BUY"

    @property
    def amount_field(self) -> str:
        """주문 수량 필드 이름"""
        return "quantity" if self is Side.BASE else "quoteOrderQty"

    @property
    def book_side(self) -> str:
        """체결되는 호가 방향"""
        return "bid" if self is Side.BASE else "ask"


def parse_decimal(value: object) -> Decimal:
    """
    유한한 십진수 문자열을 Decimal로 변환

    Raises:
        InvalidAmount: 문자열이 아니거나, ASCII 십진수 형식이 아닌 경우

    교육 포인트:
        - float("0.1") + float("0.2") != 0.3 → 금융 계산에서는 Decimal 사용
        - Decimal()은 "1_000", "１００"(전각), "NaN"도 받아들이므로 형식을 먼저 검사
    """
    if not isinstance(value, str) or _DECIMAL_PATTERN.fullmatch(value) is None:
        raise InvalidAmount(value)
    try:
        return Decimal(value)
    except InvalidOperation:
        raise InvalidAmount(value) from None


def format_decimal(value: Decimal) -> str:
    """지수 표기 없이 출력 (Decimal("1E-8") → "0.00000001")"""
    return format(value, "f")


class Quote:
    """
    거래쌍의 최우선 호가 스냅샷

    사용 예시:
        quote = Quote("ETH", "USDT")
        quote.update('{"u":1,"s":"ETHUSDT","b":"1268.53","B":"107.7663","a":"1268.54","A":"3.8993"}')
        quote.size_trade(Side.BASE, "1")   # → "1268.53000000"

    교육 포인트:
        - 가격과 수량은 거래소가 보낸 문자열 그대로 저장 (정밀도 손실 없음)
        - 생성 직후에는 수량이 -1인 초기값 → 어떤 사이징도 유동성 부족으로 거절
        - 한 소유자만 갱신하는 객체 (스레드 간 공유하지 않음)
    """

    def __init__(self, base: str, quote: str):
        """
        Args:
            base: base 자산 심볼 (예: "ETH")
            quote: quote 자산 심볼 (예: "USDT")
        """
        self._base = base.upper()
        self._quote = quote.upper()
        self.ask_price = SENTINEL_PRICE
        self.ask_qty = SENTINEL_QTY
        self.bid_price = SENTINEL_PRICE
        self.bid_qty = SENTINEL_QTY
        self.update_id: Optional[int] = None

    @property
    def base(self) -> str:
        return self._base

    @property
    def quote(self) -> str:
        return self._quote

    @property
    def symbol(self) -> str:
        """거래소 심볼 (예: ETHUSDT)"""
        return f"{self._base}{self._quote}"

    @property
    def stream_name(self) -> str:
        """
        Binance bookTicker 스트림 이름

        형식: {symbol}@bookTicker (소문자)
        """
        return f"{self.symbol.lower()}@bookTicker"

    @property
    def has_market_data(self) -> bool:
        """한 번이라도 티커를 받았는지 여부"""
        return self.update_id is not None

    def __repr__(self) -> str:
        return (
            f"Quote({self.symbol} bid={self.bid_price}x{self.bid_qty} "
            f"ask={self.ask_price}x{self.ask_qty})"
        )

    def update(self, payload: Union[str, bytes, dict]) -> None:
        """
        bookTicker 메시지로 최우선 호가 갱신

        Binance 메시지 형식:
        {
            "u": 400900217,     # order book update ID
            "s": "BNBUSDT",     # 심볼
            "b": "25.35190000", # best bid 가격
            "B": "31.21000000", # best bid 수량
            "a": "25.36520000", # best ask 가격
            "A": "40.66000000"  # best ask 수량
        }

        Raises:
            MalformedMarketData: JSON이 아니거나 필드 누락/심볼 불일치 시.
                네 필드를 모두 검증한 뒤에만 덮어쓰므로 부분 갱신은 없음.
        """
        data = _decode(payload)

        symbol = data.get("s")
        if symbol is not None and str(symbol).upper() != self.symbol:
            raise MalformedMarketData(
                f"ticker for {symbol} routed to {self.symbol}", payload
            )

        fields = {}
        for key in ("a", "A", "b", "B"):
            if key not in data:
                raise MalformedMarketData(f"missing field {key!r}", payload)
            fields[key] = _decimal_text(data[key], key, payload)

        update_id = data.get("u")
        if update_id is not None and (isinstance(update_id, bool) or not isinstance(update_id, int)):
            raise MalformedMarketData(f"update id is not an integer: {update_id!r}", payload)

        self.ask_price = fields["a"]
        self.ask_qty = fields["A"]
        self.bid_price = fields["b"]
        self.bid_qty = fields["B"]
        self.update_id = update_id if update_id is not None else (self.update_id or 0)

    def size_trade(self, side: Side, owned_amount: str) -> str:
        """
        보유 수량으로 체결 가능한 결과 수량 계산

        Args:
            side: 보유 자산 방향
            owned_amount: 보유 수량 (십진수 문자열)

        Returns:
            소수점 8자리로 절사한 결과 문자열
            - BASE: 매도 대금 (quote 자산 단위) = 보유량 × bid 가격
            - QUOTE: 매수 수량 (base 자산 단위) = 보유량 ÷ ask 가격

        Raises:
            InvalidAmount: owned_amount가 유효한 십진수가 아닌 경우
            InsufficientLiquidity: 최우선 호가 잔량을 초과하는 경우 (같으면 허용)

        교육 포인트:
            - 절사(ROUND_DOWN): 체결 가능한 수량을 절대 과대평가하지 않음
            - 시장가 매도는 Best Bid, 시장가 매수는 Best Ask에 체결
        """
        if not isinstance(side, Side):
            raise TypeError(f"side must be a Side, got {side!r}")
        amount = parse_decimal(owned_amount)
        if amount < 0:
            raise InvalidAmount(owned_amount)
        if not self.has_market_data:
            raise InsufficientLiquidity(side, format_decimal(amount), "no market data")

        if side is Side.BASE:
            price = self._book_decimal(self.bid_price)
            qty = self._book_decimal(self.bid_qty)
            if price <= 0 or qty <= 0:
                raise InsufficientLiquidity(side, format_decimal(amount), "empty bid")
            # amount × price > price × qty ⇔ amount > qty (price > 0)
            if amount > qty:
                raise InsufficientLiquidity(side, format_decimal(amount), format_decimal(qty))
        else:
            price = self._book_decimal(self.ask_price)
            qty = self._book_decimal(self.ask_qty)
            if price <= 0 or qty <= 0:
                raise InsufficientLiquidity(side, format_decimal(amount), "empty ask")
            # amount ÷ price > qty ⇔ amount > price × qty
            available = _exact_product(price, qty)
            if amount > available:
                raise InsufficientLiquidity(side, format_decimal(amount), format_decimal(available))

        with localcontext() as ctx:
            ctx.prec = _CALC_PRECISION
            ctx.rounding = ROUND_DOWN
            if side is Side.BASE:
                result = _exact_product(amount, price)
            else:
                result = amount / price
            result = result.quantize(TRADE_PRECISION, rounding=ROUND_DOWN)

        # "-0" 입력 → "-0.00000000" 방지
        if result.is_zero():
            result = result.copy_abs()
        return format_decimal(result)

    @staticmethod
    def _book_decimal(text: str) -> Decimal:
        # update()에서 검증된 값만 저장되므로 여기서의 실패는 외부에서 필드를 덮어쓴 경우
        try:
            return parse_decimal(text)
        except InvalidAmount:
            raise MalformedMarketData(f"stored book value is not a decimal: {text!r}") from None


class QuoteBook:
    """
    여러 거래쌍의 Quote 라우터

    MarketDataSession의 on_message 콜백으로 사용하면 수신한 bookTicker를
    심볼에 맞는 Quote로 전달합니다.

    사용 예시:
        book = QuoteBook([("ETH", "USDT"), ("BNB", "ETH")])
        session = MarketDataSession(channels=book.stream_names)
        session.connect()
        session.subscribe()
        session.run(book.on_message)
    """

    def __init__(self, pairs=()):
        self._quotes: dict[str, Quote] = {}
        for base, quote in pairs:
            self.add(base, quote)

    def add(self, base: str, quote: str) -> Quote:
        """거래쌍 등록 (이미 있으면 기존 Quote 반환)"""
        new_quote = Quote(base, quote)
        return self._quotes.setdefault(new_quote.symbol, new_quote)

    def get(self, symbol: str) -> Quote:
        """심볼로 Quote 조회 (KeyError if 미등록)"""
        return self._quotes[symbol.upper()]

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._quotes

    def __len__(self) -> int:
        return len(self._quotes)

    @property
    def stream_names(self) -> list[str]:
        """구독할 bookTicker 채널 목록"""
        return [q.stream_name for q in self._quotes.values()]

    def on_message(self, payload: Union[str, bytes, dict]) -> Optional[Quote]:
        """
        수신 메시지 처리

        Returns:
            갱신된 Quote. 구독 응답({"result": null, "id": 1}) 이나
            등록되지 않은 심볼이면 None

        Raises:
            MalformedMarketData: 티커 메시지 형식이 잘못된 경우
        """
        data = _decode(payload)

        # Combined stream 형식: {"stream": "...", "data": {...}}
        if "stream" in data and isinstance(data.get("data"), dict):
            data = data["data"]

        if "result" in data and "id" in data:
            return None
        if "error" in data:
            raise MalformedMarketData(f"stream error response: {data['error']}", payload)

        symbol = data.get("s")
        if symbol is None:
            raise MalformedMarketData("missing field 's'", payload)
        quote = self._quotes.get(str(symbol).upper())
        if quote is None:
            print(f"[QuoteBook] Ignoring ticker for unknown symbol {symbol}")
            return None

        quote.update(data)
        return quote


def _decode(payload: Union[str, bytes, dict]) -> dict:
    """JSON 텍스트 프레임 → dict (숫자는 Decimal로 받아 정밀도 보존)"""
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMarketData(f"frame is not UTF-8: {e}", payload) from e
    if not isinstance(payload, str):
        raise MalformedMarketData(f"unsupported payload type {type(payload).__name__}", payload)
    try:
        data = json.loads(payload, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise MalformedMarketData(f"invalid JSON: {e}", payload) from e
    if not isinstance(data, dict):
        raise MalformedMarketData("payload is not a JSON object", payload)
    return data


def _exact_product(a: Decimal, b: Decimal) -> Decimal:
    """반올림 없는 곱셈 (자릿수 합만큼 정밀도 확보)"""
    with localcontext() as ctx:
        ctx.prec = len(a.as_tuple().digits) + len(b.as_tuple().digits)
        return a * b


def _decimal_text(value: object, key: str, payload: object) -> str:
    """필드 값을 문자열로 보존하면서 십진수 여부 검증"""
    if isinstance(value, bool):
        raise MalformedMarketData(f"field {key!r} is not a decimal: {value!r}", payload)
    if isinstance(value, (int, Decimal)):
        value = str(value)
    try:
        parse_decimal(value)
    except InvalidAmount:
        raise MalformedMarketData(f"field {key!r} is not a decimal: {value!r}", payload) from None
    return value
