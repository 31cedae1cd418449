"""
Pool Management Tool

Creates pools and funds accounts from a JSON definition file, and inspects
or quotes existing pools in a ledger database.
"""
import argparse
import json
import logging
import os
import sys

from cpamm.config import Config
from cpamm.errors import AmmError
from cpamm.ledger import PoolLedger


def create_pools(pools_path: str, ledger: PoolLedger, config: Config) -> list:
    """
    Initialise every pool and fund every account listed in a JSON file.

    Args:
        pools_path (str): Path to the pool definition JSON file.
        ledger (PoolLedger): Ledger the pools and balances are written to.
        config (Config): Supplies the default fee.
    """
    print(f"Loading pool definitions from: {pools_path}")
    with open(pools_path, 'r') as f:
        definition = json.load(f)

    # --- 1. Fund accounts ---
    for account_info in definition.get('accounts', []):
        address = bytes.fromhex(account_info['address'])
        for asset_hex, amount in account_info.get('balances', {}).items():
            ledger.fund_account(address, bytes.fromhex(asset_hex), int(amount))
    print(f"Funded {len(definition.get('accounts', []))} accounts.")

    # --- 2. Create pools ---
    created = []
    for pool_info in definition.get('pools', []):
        authority = pool_info.get('authority')
        pool = ledger.initialize(
            seed=int(pool_info['seed']),
            asset_x=bytes.fromhex(pool_info['asset_x']),
            asset_y=bytes.fromhex(pool_info['asset_y']),
            fee=int(pool_info.get('fee', config.pool.fee)),
            authority=bytes.fromhex(authority) if authority else None,
        )
        created.append(pool.address.hex())
        print(f"  - Pool {pool.address.hex()} (fee {pool.fee} bps)")
    print(f"Created {len(created)} pools.")

    return created


def show_pool(ledger: PoolLedger, pool_hex: str):
    stats = ledger.get_pool_stats(bytes.fromhex(pool_hex))
    for key, value in stats.items():
        print(f"{key:>14}: {value}")
    return stats


def list_pools(ledger: PoolLedger):
    pools = ledger.list_pools()
    for pool in pools:
        print(f"{pool.address.hex()}  fee={pool.fee}  x={pool.reserve_x}  y={pool.reserve_y}  lp={pool.lp_supply}")
    return pools


def quote_swap(ledger: PoolLedger, pool_hex: str, is_x: bool, amount: int):
    receipt = ledger.quote(bytes.fromhex(pool_hex), is_x, amount)
    print(f"Input:           {receipt.amount_in} {'X' if is_x else 'Y'}")
    print(f"After fee:       {receipt.amount_in_after_fee}")
    print(f"Output:          {receipt.amount_out} {'Y' if is_x else 'X'}")
    return receipt


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Constant product pool management tool")
    parser.add_argument("--config", type=str, default=None, help="Path to JSON configuration file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_create = subparsers.add_parser("create", help="Create pools and fund accounts from a JSON file")
    parser_create.add_argument("--file", type=str, required=True, help="Pool definition file")
    parser_create.add_argument("--db", type=str, default=None, help="Ledger database path")

    parser_list = subparsers.add_parser("list", help="List all pools")
    parser_list.add_argument("--db", type=str, default=None, help="Ledger database path")

    parser_show = subparsers.add_parser("show", help="Show one pool")
    parser_show.add_argument("--db", type=str, default=None, help="Ledger database path")
    parser_show.add_argument("--pool", type=str, required=True, help="Pool address (hex)")

    parser_quote = subparsers.add_parser("quote", help="Quote a swap without executing it")
    parser_quote.add_argument("--db", type=str, default=None, help="Ledger database path")
    parser_quote.add_argument("--pool", type=str, required=True, help="Pool address (hex)")
    direction = parser_quote.add_mutually_exclusive_group(required=True)
    direction.add_argument("--x-to-y", dest="is_x", action="store_true", help="Sell X for Y")
    direction.add_argument("--y-to-x", dest="is_x", action="store_false", help="Sell Y for X")
    parser_quote.add_argument("--amount", type=int, required=True, help="Input amount")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = Config.from_file(args.config) if args.config else Config.default()
    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    if args.db:
        config.database.path = args.db
        config.database.in_memory = False
    db_path = config.database.path
    if args.command == "create" and os.path.isdir(db_path) and os.listdir(db_path):
        print(f"Error: database path '{db_path}' already exists. Please remove it first.")
        return 1

    ledger = PoolLedger.from_config(config)
    try:
        if args.command == "create":
            create_pools(args.file, ledger, config)
        elif args.command == "list":
            list_pools(ledger)
        elif args.command == "show":
            show_pool(ledger, args.pool)
        elif args.command == "quote":
            quote_swap(ledger, args.pool, args.is_x, args.amount)
    except AmmError as e:
        print(f"Error: {type(e).__name__}: {e}")
        return 1
    finally:
        ledger.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
