"""
설정 모듈

세션/실행 클라이언트의 설정값과 API 자격 증명을 묶어 둡니다.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from .execution import ExecutionClient
from .signer import DEFAULT_RECV_WINDOW
from .stream import MarketDataSession


@dataclass
class Credentials:
    """
    Binance API 자격 증명

    교육 포인트:
        - 키는 코드에 하드코딩하지 않고 환경 변수로 주입
        - repr에 시크릿이 찍히지 않도록 마스킹
    """
    api_key: str = ""
    api_secret: str = field(default="", repr=False)

    KEY_ENV = "BINANCE_API_KEY"
    SECRET_ENV = "BINANCE_API_SECRET"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "Credentials":
        """환경 변수에서 로드 (없으면 빈 문자열)"""
        environ = os.environ if environ is None else environ
        return cls(
            api_key=environ.get(cls.KEY_ENV, "").strip(),
            api_secret=environ.get(cls.SECRET_ENV, "").strip(),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass
class ClientConfig:
    """
    클라이언트 설정

    Attributes:
        ws_url: 공개 스트림 WebSocket URL
        rest_url: REST API base URL
        channels: 구독할 채널 목록 (예: ["ethusdt@bookTicker"])
        recv_window: SIGNED 요청 유효 시간 창 (ms)
        max_connection_age: 강제 재연결까지의 연결 나이 (초, 기본 12시간)
        max_reconnect_attempts: 연속 재연결 실패 허용 횟수
        backoff_base: 재연결 대기 기본값 (초)
        backoff_cap: 재연결 대기 상한 (초)
        request_timeout: REST 요청 타임아웃 (초)
        test_orders: True면 /api/v3/order/test 사용
    """
    ws_url: str = MarketDataSession.BASE_URL
    rest_url: str = ExecutionClient.BASE_URL
    channels: list[str] = field(default_factory=list)
    recv_window: int = DEFAULT_RECV_WINDOW
    max_connection_age: float = MarketDataSession.MAX_CONNECTION_AGE
    max_reconnect_attempts: int = 5
    backoff_base: float = 0.1
    backoff_cap: float = 5.0
    request_timeout: float = 10.0
    test_orders: bool = True

    def create_session(self, **overrides) -> MarketDataSession:
        """설정값으로 MarketDataSession 생성 (connector/clock 등은 overrides로)"""
        kwargs = dict(
            channels=self.channels,
            url=self.ws_url,
            max_connection_age=self.max_connection_age,
            max_reconnect_attempts=self.max_reconnect_attempts,
            backoff_base=self.backoff_base,
            backoff_cap=self.backoff_cap,
        )
        kwargs.update(overrides)
        return MarketDataSession(**kwargs)

    def create_execution_client(
        self,
        credentials: Optional[Credentials] = None,
        **overrides,
    ) -> ExecutionClient:
        """설정값과 자격 증명으로 ExecutionClient 생성"""
        credentials = credentials or Credentials()
        kwargs = dict(
            api_key=credentials.api_key or None,
            api_secret=credentials.api_secret or None,
            base_url=self.rest_url,
            recv_window=self.recv_window,
            timeout=self.request_timeout,
            test_orders=self.test_orders,
        )
        kwargs.update(overrides)
        return ExecutionClient(**kwargs)
