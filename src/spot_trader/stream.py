"""
Binance 시장 데이터 WebSocket 세션

bookTicker 스트림을 구독하고 수신 메시지를 콜백으로 전달합니다.
교육 목적으로 상세한 주석을 포함합니다.

상태 전이:
    DISCONNECTED → CONNECTED → SUBSCRIBED → STREAMING
    STREAMING → CONNECTED (12시간 경과 시 강제 재연결) → SUBSCRIBED → STREAMING
"""

import json
import random
import time
from enum import Enum
from typing import Callable, Iterable, Optional

from websockets.exceptions import (
    ConnectionClosed,
    InvalidHandshake,
    InvalidMessage,
    InvalidStatus,
    InvalidURI,
    ProtocolError,
    WebSocketException,
)
from websockets.sync.client import connect

from .errors import NetworkError, NotConnected


# 재시도해도 소용없는 실패: 잘못된 URL, 핸드셰이크 거절, 프로토콜 위반
FATAL_ERRORS = (InvalidURI, InvalidHandshake, ProtocolError)

# 재연결로 복구 가능한 실패
TRANSIENT_ERRORS = (ConnectionClosed, OSError)


class SessionState(Enum):
    """세션 상태"""
    DISCONNECTED = "DISCONNECTED"
    CONNECTED = "CONNECTED"
    SUBSCRIBED = "SUBSCRIBED"
    STREAMING = "STREAMING"


def is_fatal(error: BaseException) -> bool:
    """
    재시도하지 않고 즉시 올려야 하는 실패인지

    교육 포인트:
        - HTTP 4xx 거절(401/403 인증, 429 rate limit)은 치명적
          (429에서 재접속을 반복하면 IP 차단으로 이어짐)
        - HTTP 5xx, 핸드셰이크 도중 끊김(InvalidMessage)은 일시적 → 재시도
    """
    if isinstance(error, NetworkError):
        error = error.cause
    if isinstance(error, InvalidStatus):
        return 400 <= error.response.status_code < 500
    if isinstance(error, InvalidMessage):
        return False
    return isinstance(error, FATAL_ERRORS)


class MarketDataSession:
    """
    장기 실행 시장 데이터 세션

    사용 예시:
        book = QuoteBook([("ETH", "USDT")])
        session = MarketDataSession(book.stream_names)
        session.connect()
        session.subscribe()
        session.run(book.on_message)   # stop() 또는 치명적 오류까지 블로킹

    교육 포인트:
        - Binance는 단일 연결을 24시간 후 끊음 → 12시간마다 미리 재연결
        - 나이 체크는 메시지 처리 직후에만 수행 → 거래가 뜸하면 12시간을 넘길 수 있음
        - 재연결은 콜백 실행 중에 끼어들지 않음 (수신 순서 보장)
        - ping/pong은 websockets 라이브러리가 자동 처리
    """

    # Binance WebSocket 스트림 기본 URL
    BASE_URL = "wss://stream.binance.com:443/ws"

    # 최대 연결 유지 시간 (초)
    MAX_CONNECTION_AGE = 12 * 60 * 60

    def __init__(
        self,
        channels: Iterable[str],
        url: Optional[str] = None,
        max_connection_age: float = MAX_CONNECTION_AGE,
        max_reconnect_attempts: int = 5,
        backoff_base: float = 0.1,
        backoff_cap: float = 5.0,
        connector: Optional[Callable] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            channels: 구독할 채널 목록 (예: ["ethusdt@bookTicker"])
            url: WebSocket URL (기본값: Binance 공개 스트림)
            max_connection_age: 강제 재연결까지의 연결 나이 (초)
            max_reconnect_attempts: 연속 실패 허용 횟수. 초과 시 NetworkError
            backoff_base: 재연결 대기 기본값 (초)
            backoff_cap: 재연결 대기 상한 (초)
            connector: url → WebSocket 연결을 반환하는 함수 (테스트용 주입)
            clock: 단조 증가 시계 (테스트용 주입)
            sleep: 대기 함수 (테스트용 주입)
        """
        self.channels = list(channels)
        self.url = url or self.BASE_URL
        self.max_connection_age = max_connection_age
        self.max_reconnect_attempts = max_reconnect_attempts
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self._connector = connector
        self._clock = clock
        self._sleep = sleep

        self.connection = None
        self.connection_started_at: Optional[float] = None
        self.state = SessionState.DISCONNECTED
        self.subscriptions: list[str] = []
        self._next_request_id = 1
        self._running = False

        # Stats
        self.messages_received = 0
        self.reconnects = 0

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    @property
    def connection_age(self) -> float:
        """현재 연결의 경과 시간 (초). 연결 전에는 0"""
        if self.connection_started_at is None or self.connection is None:
            return 0.0
        return self._clock() - self.connection_started_at

    def needs_reconnect(self) -> bool:
        """최대 연결 나이를 초과했는지"""
        return self.connection_age > self.max_connection_age

    def connect(self) -> None:
        """
        WebSocket 연결

        이 계층에서는 재시도하지 않습니다. run() 안에서만 백오프 재시도.

        Raises:
            NetworkError: 연결 실패 (원인 예외는 cause에 보존)
        """
        if self.connection is not None:
            self._teardown()

        connector = self._connector or connect
        print(f"[Session] Connecting to {self.url}...")
        try:
            ws = connector(self.url)
        except (WebSocketException, OSError) as e:
            raise NetworkError("connect", e) from e

        self.connection = ws
        self.connection_started_at = self._clock()
        self.state = SessionState.CONNECTED
        print("[Session] Connected.")

    def subscribe(self, channels: Optional[Iterable[str]] = None) -> int:
        """
        채널 구독 메시지 전송

        메시지 형식:
        {
            "method": "SUBSCRIBE",
            "params": ["ethusdt@bookTicker", ...],
            "id": 1
        }

        Args:
            channels: 구독할 채널 (None이면 생성자의 channels)

        Returns:
            요청 id (응답 {"result": null, "id": <id>}와 매칭)

        Raises:
            NotConnected: 연결 전 호출 시
            NetworkError: 전송 실패
        """
        if self.connection is None:
            raise NotConnected("subscribe")

        channels = self.channels if channels is None else list(channels)
        request_id = self._send_control("SUBSCRIBE", channels, "subscribe")
        for channel in channels:
            if channel not in self.subscriptions:
                self.subscriptions.append(channel)
        self.state = SessionState.SUBSCRIBED
        print(f"[Session] Subscribed: {', '.join(channels)}")
        return request_id

    def unsubscribe(self, channels: Iterable[str]) -> int:
        """
        채널 구독 해제

        Raises:
            NotConnected: 연결 전 호출 시
        """
        if self.connection is None:
            raise NotConnected("unsubscribe")

        channels = list(channels)
        request_id = self._send_control("UNSUBSCRIBE", channels, "unsubscribe")
        self.subscriptions = [c for c in self.subscriptions if c not in channels]
        print(f"[Session] Unsubscribed: {', '.join(channels)}")
        return request_id

    def reconnect(self) -> None:
        """
        연결 재수립: 종료 → 연결 → 기존 구독 복원

        연결 나이 타이머가 초기화됩니다.
        """
        print("[Session] Connection being reset.")
        self._teardown()
        self.connect()
        self.reconnects += 1
        if self.subscriptions:
            self._send_control("SUBSCRIBE", list(self.subscriptions), "subscribe")
            self.state = SessionState.SUBSCRIBED
            print(f"[Session] Resubscribed: {', '.join(self.subscriptions)}")

    def run(self, on_message: Callable[[str], None]) -> None:
        """
        수신 루프 (블로킹)

        Args:
            on_message: 수신한 텍스트 프레임마다 동기적으로 호출되는 콜백.
                콜백에서 발생한 예외는 그대로 전파됩니다.

        Raises:
            NotConnected: connect() 전에 호출한 경우
            NetworkError: 치명적 실패, 또는 연속 실패가 max_reconnect_attempts 초과

        교육 포인트:
            - 일시적 실패(연결 끊김, 소켓 오류)는 지수 백오프 + 지터로 재연결
            - 공식: min(Cap, Base * 2^Attempt) + Jitter
            - 핸드셰이크 4xx 거절(401/403/429), 잘못된 URI는 즉시 중단. 5xx는 재시도
        """
        if self.connection is None:
            raise NotConnected("run")

        self._running = True
        failures = 0

        while self._running:
            try:
                message = self.connection.recv()
            except FATAL_ERRORS as e:
                self._running = False
                raise NetworkError("run", e) from e
            except TRANSIENT_ERRORS as e:
                print(f"[Session] Read failed: {e}")
                failures = self._recover(e, failures)
                continue

            failures = 0
            self.messages_received += 1
            self.state = SessionState.STREAMING
            on_message(message)

            if self._running and self.needs_reconnect():
                print(f"[Session] Connection age {self.connection_age:.0f}s exceeded limit.")
                try:
                    self.reconnect()
                except NetworkError as e:
                    if is_fatal(e):
                        self._running = False
                        raise
                    failures = self._recover(e.cause, failures)

        print("[Session] Receive loop stopped.")

    def stop(self) -> None:
        """수신 루프 종료 요청 (현재 메시지 처리 후 반환)"""
        self._running = False

    def close(self) -> None:
        """연결 종료"""
        self._running = False
        self._teardown()
        self.state = SessionState.DISCONNECTED
        print("[Session] Disconnected.")

    def __enter__(self) -> "MarketDataSession":
        if self.connection is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _recover(self, cause: BaseException, failures: int) -> int:
        """
        백오프 후 재연결. 성공하면 누적 실패 횟수를 반환

        Raises:
            NetworkError: 치명적 실패 또는 재시도 한도 초과
        """
        while True:
            failures += 1
            if failures > self.max_reconnect_attempts:
                self._running = False
                print("[Session] Max reconnect attempts reached. Stopping.")
                raise NetworkError("run", cause) from cause

            wait_time = self._backoff(failures)
            print(f"[Session] Reconnecting in {wait_time:.3f}s... (attempt {failures})")
            self._sleep(wait_time)

            try:
                self.reconnect()
                return failures
            except NetworkError as e:
                if is_fatal(e):
                    self._running = False
                    raise
                print(f"[Session] Reconnect failed: {e}")
                cause = e.cause

    def _backoff(self, attempt: int) -> float:
        jitter = random.uniform(0, 0.1)  # 동기화 방지
        return min(self.backoff_cap, self.backoff_base * (2 ** attempt)) + jitter

    def _send_control(self, method: str, channels: list[str], operation: str) -> int:
        request_id = self._next_request_id
        self._next_request_id += 1
        payload = json.dumps({"method": method, "params": channels, "id": request_id})
        try:
            self.connection.send(payload)
        except (WebSocketException, OSError) as e:
            raise NetworkError(operation, e) from e
        return request_id

    def _teardown(self) -> None:
        ws = self.connection
        self.connection = None
        self.connection_started_at = None
        self.state = SessionState.DISCONNECTED
        if ws is None:
            return
        try:
            ws.close()
        except (WebSocketException, OSError) as e:
            print(f"[Session] Error closing websocket: {e}")
