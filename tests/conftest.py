"""
Pytest 설정

통합 테스트는 --integration 플래그로 실행
"""

import pytest


def pytest_addoption(parser):
    """커스텀 옵션 추가"""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="통합 테스트 실행 (Binance 네트워크 필요)"
    )


def pytest_configure(config):
    """마커 등록"""
    config.addinivalue_line(
        "markers",
        "integration: 실제 Binance 연결이 필요한 통합 테스트"
    )


def pytest_collection_modifyitems(config, items):
    """통합 테스트 스킵 처리"""
    if config.getoption("--integration"):
        # --integration 옵션이 있으면 모든 테스트 실행
        return

    skip_integration = pytest.mark.skip(reason="--integration 옵션 필요")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ETHUSDT bookTicker 샘플 (2022-12 실제 수신 메시지)
ETHUSDT_TICKER = (
    '{"u":22277893334,"s":"ETHUSDT","b":"1268.53000000","B":"107.76630000",'
    '"a":"1268.54000000","A":"3.89930000"}'
)


@pytest.fixture
def eth_ticker() -> str:
    return ETHUSDT_TICKER


@pytest.fixture
def eth_quote(eth_ticker):
    """ETHUSDT 샘플 티커가 반영된 Quote"""
    from spot_trader.quote import Quote

    quote = Quote("ETH", "USDT")
    quote.update(eth_ticker)
    return quote
