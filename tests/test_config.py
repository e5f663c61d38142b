"""
설정 모듈 테스트
"""

from spot_trader.config import ClientConfig, Credentials
from spot_trader.execution import ExecutionClient
from spot_trader.stream import MarketDataSession


class TestCredentials:
    """자격 증명 테스트"""

    def test_from_env(self):
        creds = Credentials.from_env({
            "BINANCE_API_KEY": " key ",
            "BINANCE_API_SECRET": "secret\n",
        })

        assert creds.api_key == "key"
        assert creds.api_secret == "secret"
        assert creds.is_complete is True

    def test_from_env_missing(self):
        creds = Credentials.from_env({})

        assert creds.api_key == ""
        assert creds.is_complete is False

    def test_repr_hides_secret(self):
        creds = Credentials(api_key="key", api_secret="top-secret")

        assert "top-secret" not in repr(creds)


class TestClientConfig:
    """ClientConfig 팩토리 테스트"""

    def test_defaults(self):
        config = ClientConfig()

        assert config.ws_url == "wss://stream.binance.com:443/ws"
        assert config.rest_url == "https://api.binance.com"
        assert config.recv_window == 5000
        assert config.max_connection_age == 12 * 60 * 60
        assert config.test_orders is True
        assert config.channels == []

    def test_create_session(self):
        config = ClientConfig(
            channels=["ethusdt@bookTicker"],
            max_connection_age=60.0,
            max_reconnect_attempts=2,
        )

        session = config.create_session()

        assert isinstance(session, MarketDataSession)
        assert session.channels == ["ethusdt@bookTicker"]
        assert session.max_connection_age == 60.0
        assert session.max_reconnect_attempts == 2

    def test_create_session_overrides(self):
        connector = object()
        session = ClientConfig().create_session(connector=connector, url="wss://example.test/ws")

        assert session.url == "wss://example.test/ws"
        assert session._connector is connector

    def test_create_execution_client(self):
        config = ClientConfig(rest_url="https://testnet.binance.vision", recv_window=10000)

        client = config.create_execution_client(Credentials("key", "secret"))

        assert isinstance(client, ExecutionClient)
        assert client.api_key == "key"
        assert client.api_secret == "secret"
        assert client.recv_window == 10000
        assert client.order_url == "https://testnet.binance.vision/api/v3/order/test"

    def test_create_execution_client_without_credentials(self):
        client = ClientConfig(test_orders=False).create_execution_client()

        assert client.api_key is None
        assert client.order_url.endswith("/api/v3/order")
