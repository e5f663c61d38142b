"""
ExecutionClient 테스트

requests.Session을 Mock으로 대체해 서버 시간 조회와 서명 주문 제출을 검증합니다.
"""

from unittest.mock import MagicMock

import pytest
import requests

from spot_trader.errors import InsufficientLiquidity, NetworkError, SignatureError
from spot_trader.execution import ExecutionClient
from spot_trader.quote import Side
from spot_trader.signer import build_signed_order, verify_signature


API_KEY = "vmPUZE6mv9SD5VNHk4HlWFsOr6aKE2zvsw0MuIgwCIPy6utIco14y7Ju91duEh8A"
API_SECRET = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"
SERVER_TIME = 1672531200000


def make_response(status_code=200, payload=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock(spec=requests.Session)
    session.get.return_value = make_response(payload={"serverTime": SERVER_TIME})
    session.post.return_value = make_response(payload={})
    return session


@pytest.fixture
def client(session) -> ExecutionClient:
    return ExecutionClient(api_key=API_KEY, api_secret=API_SECRET, session=session)


class TestExecutionClientInit:
    """ExecutionClient 초기화 테스트"""

    def test_default(self):
        client = ExecutionClient()

        assert client.base_url == "https://api.binance.com"
        assert client.recv_window == 5000
        assert client.order_url == "https://api.binance.com/api/v3/order"

    def test_test_orders_endpoint(self):
        client = ExecutionClient(base_url="https://testnet.binance.vision/", test_orders=True)

        assert client.order_url == "https://testnet.binance.vision/api/v3/order/test"


class TestFetchServerTime:
    """서버 시간 조회 테스트"""

    def test_returns_server_time(self, client, session):
        assert client.fetch_server_time() == SERVER_TIME
        session.get.assert_called_once_with(
            "https://api.binance.com/api/v3/time", timeout=10.0
        )

    def test_transport_failure(self, client, session):
        session.get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(NetworkError) as exc_info:
            client.fetch_server_time()

        assert exc_info.value.operation == "fetch_server_time"
        assert isinstance(exc_info.value.cause, requests.ConnectionError)

    def test_http_error(self, client, session):
        session.get.return_value = make_response(status_code=503)

        with pytest.raises(NetworkError):
            client.fetch_server_time()

    @pytest.mark.parametrize("payload", [{}, {"serverTime": "1672531200000"}, [1, 2]])
    def test_missing_server_time(self, client, session, payload):
        session.get.return_value = make_response(payload=payload)

        with pytest.raises(NetworkError):
            client.fetch_server_time()


class TestSubmitOrder:
    """서명 주문 제출 테스트"""

    def test_posts_signed_body_with_api_key_header(self, client, session, eth_quote):
        response = client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME)

        assert response is session.post.return_value
        url = session.post.call_args.args[0]
        kwargs = session.post.call_args.kwargs
        assert url == "https://api.binance.com/api/v3/order"
        assert kwargs["headers"]["X-MBX-APIKEY"] == API_KEY
        assert kwargs["data"] == build_signed_order(
            "ETHUSDT", Side.BASE, "1", SERVER_TIME, API_SECRET
        )
        assert verify_signature(kwargs["data"], API_SECRET)
        session.get.assert_not_called()

    def test_quote_side_uses_quote_order_qty(self, client, session, eth_quote):
        client.submit_order(eth_quote, Side.QUOTE, "100", SERVER_TIME)

        body = session.post.call_args.kwargs["data"]
        assert body.startswith(
            "symbol=ETHUSDT&side=BUY&type=MARKET&quoteOrderQty=100&recvWindow=5000"
            "&timestamp=1672531200000&signature="
        )

    def test_fetches_server_time_when_missing(self, client, session, eth_quote):
        client.submit_order(eth_quote, Side.BASE, "1")

        session.get.assert_called_once()
        assert f"timestamp={SERVER_TIME}" in session.post.call_args.kwargs["data"]

    def test_explicit_credentials_override(self, session, eth_quote):
        client = ExecutionClient(session=session)

        client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME, "other-key", "other-secret")

        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"]["X-MBX-APIKEY"] == "other-key"
        assert verify_signature(kwargs["data"], "other-secret")

    def test_insufficient_liquidity_sends_nothing(self, client, session, eth_quote):
        with pytest.raises(InsufficientLiquidity):
            client.submit_order(eth_quote, Side.QUOTE, "4946.418023", SERVER_TIME)

        session.post.assert_not_called()

    def test_missing_secret_raises_signature_error(self, session, eth_quote):
        client = ExecutionClient(api_key=API_KEY, session=session)

        with pytest.raises(SignatureError):
            client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME)

        session.post.assert_not_called()

    def test_missing_api_key_raises_signature_error(self, session, eth_quote):
        client = ExecutionClient(api_secret=API_SECRET, session=session)

        with pytest.raises(SignatureError):
            client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME)

    def test_error_response_returned_as_is(self, client, session, eth_quote):
        """거래소 에러 응답은 해석하지 않고 그대로 반환"""
        rejected = make_response(status_code=401, payload={"code": -2015, "msg": "Invalid API-key"})
        session.post.return_value = rejected

        assert client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME) is rejected

    def test_transport_failure(self, client, session, eth_quote):
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(NetworkError) as exc_info:
            client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME)

        assert exc_info.value.operation == "submit_order"
        assert session.post.call_count == 1  # 자동 재시도 없음

    def test_test_order_endpoint(self, session, eth_quote):
        client = ExecutionClient(API_KEY, API_SECRET, test_orders=True, session=session)

        client.submit_order(eth_quote, Side.BASE, "1", SERVER_TIME)

        assert session.post.call_args.args[0].endswith("/api/v3/order/test")


class TestBinanceIntegration:
    """실제 Binance REST 호출 (네트워크 필요)"""

    @pytest.mark.integration
    def test_fetch_server_time(self):
        client = ExecutionClient()

        assert client.fetch_server_time() > 1_600_000_000_000
