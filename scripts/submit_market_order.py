#!/usr/bin/env python3
"""
시장가 주문 제출 스크립트

bookTicker 한 건으로 유동성을 확인한 뒤 서명된 시장가 주문을 제출합니다.
기본값은 테스트 주문 엔드포인트(/api/v3/order/test)입니다.

사용법:
    export BINANCE_API_KEY=... BINANCE_API_SECRET=...
    python scripts/submit_market_order.py --pair ETH/USDT --side quote --amount 100
    python scripts/submit_market_order.py --pair ETH/USDT --side base --amount 0.05 --live
"""

import argparse

from spot_trader import (
    ClientConfig,
    Credentials,
    QuoteBook,
    Side,
    SpotTraderError,
)


def main():
    parser = argparse.ArgumentParser(description="Submit a signed market order to Binance")
    parser.add_argument("--pair", default="ETH/USDT", help="Trading pair as BASE/QUOTE (default: ETH/USDT)")
    parser.add_argument("--side", choices=["base", "quote"], required=True,
                        help="Owned asset: base sells into the bid, quote buys at the ask")
    parser.add_argument("--amount", required=True, help="Owned amount (decimal string)")
    parser.add_argument("--live", action="store_true", help="Send a real order instead of a test order")

    args = parser.parse_args()

    base, _, quote_asset = args.pair.upper().partition("/")
    if not base or not quote_asset:
        parser.error(f"--pair must look like BASE/QUOTE, got {args.pair!r}")
    side = Side.BASE if args.side == "base" else Side.QUOTE

    credentials = Credentials.from_env()
    if not credentials.is_complete:
        print(f"[Main] Set {Credentials.KEY_ENV} and {Credentials.SECRET_ENV} first.")
        raise SystemExit(2)

    book = QuoteBook([(base, quote_asset)])
    config = ClientConfig(channels=book.stream_names, test_orders=not args.live)
    session = config.create_session()
    client = config.create_execution_client(credentials)

    # 첫 티커 수신까지만 스트림 사용
    def on_message(message):
        if book.on_message(message) is not None:
            session.stop()

    try:
        with session:
            session.subscribe()
            session.run(on_message)

        quote = book.get(base + quote_asset)
        print(f"[Main] {quote}")
        response = client.submit_order(quote, side, args.amount)
    except SpotTraderError as e:
        print(f"[Main] {type(e).__name__}: {e}")
        raise SystemExit(1)
    finally:
        client.close()

    print(f"[Main] Endpoint: {client.order_url}")
    print(f"[Main] HTTP {response.status_code}: {response.text}")


if __name__ == "__main__":
    main()
