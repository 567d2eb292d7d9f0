"""Command-line entry point.

Usage:
    tonwallet balance ADDRESS
    tonwallet new [--store KEY_ID --context CONTEXT]
    tonwallet quote POOL AMOUNT --direction native_to_token [--jetton USDT]
    tonwallet config
"""

import argparse
import asyncio
import json
import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Optional

from tonwallet.config import get_settings
from tonwallet.crypto import get_vault
from tonwallet.errors import WalletError
from tonwallet.identity import WalletIdentity
from tonwallet.keystore.encrypted import EncryptedKeyStore
from tonwallet.rpc.gateway import RpcGateway
from tonwallet.services.balances import BalanceAggregator
from tonwallet.services.prices import PriceFeed
from tonwallet.services.swap import SwapEngine
from tonwallet.services.transfer import TransferBuilder
from tonwallet.tokens import get_jetton, tracked_jettons
from tonwallet.types import NATIVE_DECIMALS, PriceCache, SwapDirection, to_base_units, to_display

logger = logging.getLogger(__name__)


def setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


async def cmd_balance(args) -> int:
    settings = get_settings()
    async with RpcGateway.from_settings(settings) as rpc:
        aggregator = BalanceAggregator(
            rpc,
            tracked_jettons(settings.jetton_symbols),
            PriceFeed(settings.price_feed_url, PriceCache(ttl=settings.price_cache_ttl)),
        )
        balances = await aggregator.get_balances(args.address)

    print(f"Address: {balances.address}")
    print(f"  TON:  {balances.native.display}  (~${balances.fiat_value.quantize(Decimal('0.01'))})")
    for token in balances.tokens:
        print(f"  {token.symbol}: {token.display}")
    return 0


async def cmd_new(args) -> int:
    identity = WalletIdentity.generate()
    print(f"Address:    {identity.address}")
    print(f"Public key: {identity.public_key_hex}")

    if args.store:
        if not args.context:
            print("--context is required with --store", file=sys.stderr)
            return 2
        store = EncryptedKeyStore(get_vault(), get_settings().keystore_path)
        await store.save(args.store, identity, args.context.encode())
        print(f"Stored encrypted key under {args.store}")
    return 0


async def cmd_quote(args) -> int:
    settings = get_settings()
    direction = SwapDirection(args.direction)
    jetton = get_jetton(args.jetton)

    if direction == SwapDirection.NATIVE_TO_TOKEN:
        in_decimals, out_decimals, out_symbol = NATIVE_DECIMALS, jetton.decimals, jetton.symbol
    else:
        in_decimals, out_decimals, out_symbol = jetton.decimals, NATIVE_DECIMALS, "TON"

    try:
        amount = to_base_units(Decimal(args.amount), in_decimals)
    except InvalidOperation:
        print(f"Invalid amount: {args.amount}", file=sys.stderr)
        return 2

    async with RpcGateway.from_settings(settings) as rpc:
        balances = BalanceAggregator(rpc)
        engine = SwapEngine(
            rpc,
            TransferBuilder(rpc, balances, network_fee=settings.network_fee),
            slippage_bps=settings.slippage_bps,
            protocol_fee=settings.swap_protocol_fee,
        )
        swap_quote = await engine.get_quote(args.pool, amount, direction)

    print(f"Expected: {to_display(swap_quote.expected_output, out_decimals)} {out_symbol}")
    print(
        f"Minimum:  {to_display(swap_quote.minimum_output, out_decimals)} {out_symbol} "
        f"(slippage {swap_quote.slippage_bps / 100}%)"
    )
    return 0


async def cmd_config(args) -> int:
    print(json.dumps(get_settings().get_safe_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tonwallet", description="Non-custodial TON wallet")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("balance", help="Show native and jetton balances")
    p.add_argument("address")
    p.set_defaults(handler=cmd_balance)

    p = sub.add_parser("new", help="Generate a new wallet")
    p.add_argument("--store", metavar="KEY_ID", help="Save the encrypted key under this id")
    p.add_argument("--context", help="Context the stored key is bound to")
    p.set_defaults(handler=cmd_new)

    p = sub.add_parser("quote", help="Quote a swap against a pool's reserves")
    p.add_argument("pool", help="Pool contract address")
    p.add_argument("amount", help="Input amount in display units")
    p.add_argument(
        "--direction",
        choices=[d.value for d in SwapDirection],
        default=SwapDirection.NATIVE_TO_TOKEN.value,
    )
    p.add_argument("--jetton", default="USDT", help="Jetton side of the pool")
    p.set_defaults(handler=cmd_quote)

    p = sub.add_parser("config", help="Print settings with secrets redacted")
    p.set_defaults(handler=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(get_settings().debug)

    try:
        return asyncio.run(args.handler(args))
    except WalletError as e:
        logger.error(e.message)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
