#!/usr/bin/env python3
"""
Book Ticker 스트림 실행 스크립트

CLI에서 거래쌍의 최우선 호가를 실시간으로 출력합니다.

사용법:
    python scripts/run_book_ticker.py --pair ETH/USDT
    python scripts/run_book_ticker.py --pair ETH/USDT --pair BNB/ETH --size-base 1.5
"""

import argparse

from spot_trader import (
    ClientConfig,
    InsufficientLiquidity,
    InvalidAmount,
    NetworkError,
    QuoteBook,
    Side,
    SpotTraderError,
)
from spot_trader.quote import parse_decimal


def parse_pair(text: str) -> tuple[str, str]:
    base, sep, quote = text.partition("/")
    if not sep or not base or not quote:
        raise argparse.ArgumentTypeError(f"pair must look like BASE/QUOTE, got {text!r}")
    return base.upper(), quote.upper()


def parse_amount(text: str) -> str:
    try:
        parse_decimal(text)
    except InvalidAmount as e:
        raise argparse.ArgumentTypeError(str(e)) from None
    return text


def main():
    parser = argparse.ArgumentParser(description="Stream best bid/ask from Binance")
    parser.add_argument("--pair", type=parse_pair, action="append", default=None,
                        help="Trading pair as BASE/QUOTE (repeatable, default: ETH/USDT)")
    parser.add_argument("--size-base", type=parse_amount, default=None,
                        help="Owned base amount to size against the best bid on each update")
    parser.add_argument("--size-quote", type=parse_amount, default=None,
                        help="Owned quote amount to size against the best ask on each update")
    parser.add_argument("--max-age-hours", type=float, default=12.0,
                        help="Force reconnect after this many hours (default: 12)")
    parser.add_argument("--count", type=int, default=None,
                        help="Stop after this many ticker updates (default: infinite)")

    args = parser.parse_args()

    book = QuoteBook(args.pair or [("ETH", "USDT")])
    config = ClientConfig(
        channels=book.stream_names,
        max_connection_age=args.max_age_hours * 60 * 60,
    )

    print("=" * 60)
    print("Book Ticker Stream")
    print("=" * 60)
    print(f"URL: {config.ws_url}")
    print(f"Channels: {', '.join(config.channels)}")
    print(f"Reconnect after: {args.max_age_hours}h")
    print("=" * 60)
    print()

    session = config.create_session()
    updates = 0

    def on_message(message):
        nonlocal updates
        quote = book.on_message(message)
        if quote is None:
            return
        updates += 1

        line = (
            f"[{updates}] {quote.symbol} | "
            f"Bid: {quote.bid_price} ({quote.bid_qty}) | "
            f"Ask: {quote.ask_price} ({quote.ask_qty})"
        )
        for side, amount in ((Side.BASE, args.size_base), (Side.QUOTE, args.size_quote)):
            if amount is None:
                continue
            try:
                line += f" | {side.order_side} {amount} -> {quote.size_trade(side, amount)}"
            except InsufficientLiquidity:
                line += f" | {side.order_side} {amount} -> insufficient liquidity"
        print(line)

        if args.count and updates >= args.count:
            session.stop()

    try:
        with session:
            session.subscribe()
            session.run(on_message)
    except KeyboardInterrupt:
        print("\n[Main] Interrupted by user")
    except NetworkError as e:
        print(f"[Main] Stream failed: {e}")
        raise SystemExit(1)
    except SpotTraderError as e:
        print(f"[Main] {type(e).__name__}: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
