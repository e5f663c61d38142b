"""
Binance REST 주문 실행 클라이언트

서버 시간 조회와 서명된 시장가 주문 제출을 담당합니다.

교육 포인트:
    - SIGNED 요청은 timestamp가 서버 시간 기준 recvWindow 안에 있어야 함
    - 로컬 시계는 어긋날 수 있으므로 서버 시간을 먼저 조회
    - API 키는 헤더(X-MBX-APIKEY), 시크릿은 서명에만 사용 (전송 안 함)
"""

from typing import Optional

import requests

from .errors import NetworkError, SignatureError
from .quote import Quote, Side
from .signer import DEFAULT_RECV_WINDOW, build_signed_order


class ExecutionClient:
    """
    Binance Spot 주문 클라이언트

    사용 예시:
        client = ExecutionClient(api_key="...", api_secret="...", test_orders=True)
        timestamp = client.fetch_server_time()
        response = client.submit_order(quote, Side.QUOTE, "100", timestamp)
        print(response.status_code, response.json())

    교육 포인트:
        - test_orders=True면 /api/v3/order/test 사용 (검증만 하고 체결 안 함)
        - 거래소 에러 응답(잔고 부족, 잘못된 서명 등)은 해석하지 않고 그대로 반환
        - 주문은 자동 재시도하지 않음 (중복 체결 방지)
    """

    BASE_URL = "https://api.binance.com"
    TIME_PATH = "/api/v3/time"
    ORDER_PATH = "/api/v3/order"
    TEST_ORDER_PATH = "/api/v3/order/test"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        recv_window: int = DEFAULT_RECV_WINDOW,
        timeout: float = 10.0,
        test_orders: bool = False,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            api_key: 기본 API 키 (submit_order 인자로 덮어쓸 수 있음)
            api_secret: 기본 API 시크릿
            base_url: REST base URL (기본값: Binance Spot)
            recv_window: 요청 유효 시간 창 (ms)
            timeout: HTTP 요청 타임아웃 (초)
            test_orders: True면 테스트 주문 엔드포인트 사용
            session: requests.Session (테스트용 주입)
        """
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.recv_window = recv_window
        self.timeout = timeout
        self.test_orders = test_orders
        self._session = session or requests.Session()

    @property
    def order_url(self) -> str:
        path = self.TEST_ORDER_PATH if self.test_orders else self.ORDER_PATH
        return f"{self.base_url}{path}"

    def fetch_server_time(self) -> int:
        """
        거래소 서버 시간 조회

        Returns:
            서버 시간 (epoch milliseconds)

        Raises:
            NetworkError: 요청 실패, 비정상 상태 코드, serverTime 누락
        """
        url = f"{self.base_url}{self.TIME_PATH}"
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise NetworkError("fetch_server_time", e) from e

        server_time = data.get("serverTime") if isinstance(data, dict) else None
        if isinstance(server_time, bool) or not isinstance(server_time, int):
            raise NetworkError(
                "fetch_server_time",
                ValueError(f"response has no integer serverTime: {data!r}"),
            )
        return server_time

    def submit_order(
        self,
        quote: Quote,
        side: Side,
        owned_amount: str,
        server_timestamp: Optional[int] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
    ) -> requests.Response:
        """
        시장가 주문 제출

        1. Quote로 유동성 확인 및 예상 체결량 계산
        2. 주문 문자열 생성 및 서명
        3. X-MBX-APIKEY 헤더와 함께 POST

        Args:
            quote: 최신 호가가 반영된 Quote
            side: 보유 자산 방향 (BASE → SELL, QUOTE → BUY)
            owned_amount: 보유 수량 (십진수 문자열)
            server_timestamp: 서버 시간 (ms). None이면 먼저 조회
            api_key: API 키 (None이면 생성자 값)
            api_secret: API 시크릿 (None이면 생성자 값)

        Returns:
            거래소 응답 (상태 코드와 무관하게 그대로 반환)

        Raises:
            InvalidAmount, InsufficientLiquidity: 사이징 실패
            SignatureError: API 키/시크릿 누락
            NetworkError: 전송 실패
        """
        api_key = api_key if api_key is not None else self.api_key
        api_secret = api_secret if api_secret is not None else self.api_secret
        if not api_key:
            raise SignatureError("submit_order: API key is missing")
        if not api_secret:
            raise SignatureError("submit_order: API secret is missing")

        estimate = quote.size_trade(side, owned_amount)

        if server_timestamp is None:
            server_timestamp = self.fetch_server_time()

        body = build_signed_order(
            quote.symbol,
            side,
            owned_amount,
            server_timestamp,
            api_secret,
            recv_window=self.recv_window,
        )

        unit = quote.quote if side is Side.BASE else quote.base
        print(
            f"[Execution] {side.order_side} {quote.symbol} {side.amount_field}={owned_amount} "
            f"(expected {estimate} {unit})"
        )

        try:
            response = self._session.post(
                self.order_url,
                data=body,
                headers={
                    "X-MBX-APIKEY": api_key,
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NetworkError("submit_order", e) from e

        print(f"[Execution] Response: HTTP {response.status_code}")
        return response

    def close(self) -> None:
        self._session.close()
