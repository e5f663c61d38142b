"""
예외 계층

사이징, 서명, 네트워크 실패를 호출자에게 타입으로 전달합니다.
"""

from typing import Optional


class SpotTraderError(Exception):
    """spot_trader 패키지의 모든 예외의 부모 클래스"""


class InvalidAmount(SpotTraderError, ValueError):
    """십진수로 해석할 수 없는 수량 입력"""

    def __init__(self, value: object):
        super().__init__(f"Invalid decimal amount: {value!r}")
        self.value = value


class MalformedMarketData(SpotTraderError, ValueError):
    """예상한 형태로 파싱할 수 없는 티커 메시지"""

    def __init__(self, reason: str, payload: object = None):
        super().__init__(f"Malformed market data: {reason}")
        self.reason = reason
        self.payload = payload


class InsufficientLiquidity(SpotTraderError):
    """
    최우선 호가 잔량으로 감당할 수 없는 거래

    Attributes:
        side: 사이징을 요청한 보유 자산 방향 (Side.BASE / Side.QUOTE)
    """

    def __init__(self, side, requested: str, available: str):
        super().__init__(
            f"Not enough liquidity on {side.book_side} side: "
            f"requested {requested}, available {available}"
        )
        self.side = side
        self.requested = requested
        self.available = available


class SignatureError(SpotTraderError):
    """서명 전제 조건 위반 (시크릿 누락, 잘못된 타임스탬프 등)"""


class NotConnected(SpotTraderError):
    """연결되지 않은 세션에 송신을 시도함"""

    def __init__(self, operation: str):
        super().__init__(f"{operation}: session is not connected")
        self.operation = operation


class NetworkError(SpotTraderError):
    """
    연결/수신/송신 실패

    Attributes:
        operation: 실패한 작업 이름 (예: "connect", "run", "submit_order")
        cause: 원인 예외
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {type(cause).__name__}: {cause}"
        super().__init__(message)
        self.operation = operation
        self.cause = cause
