#!/usr/bin/env python3
"""
Verify and repair stored capital pool totals.

This script:
1. Recomputes every pool's totals from its positions and reports mismatches.
2. Lists instruments with more than one active position.
3. With --apply, backs up a SQLite database and rewrites the stored totals.
"""
import argparse
import asyncio
from datetime import datetime
from pathlib import Path

from liquidity.core.config import settings
from liquidity.core.exceptions import LiquidityError
from liquidity.services.audit_service import AuditService
from liquidity.services.pool_accountant import PoolAccountant


def _backup_sqlite(database_url: str):
    if not database_url.startswith("sqlite:///"):
        return None
    db_path = Path(database_url.replace("sqlite:///", "", 1))
    if not db_path.exists():
        raise SystemExit(f"DB not found: {db_path}")
    backup_path = db_path.with_suffix(db_path.suffix + f".bak.{datetime.utcnow().strftime('%Y%m%d%H%M%S')}")
    backup_path.write_bytes(db_path.read_bytes())
    return backup_path


async def run(pool_names, apply: bool):
    accountant = PoolAccountant()
    audit = AuditService(accountant)
    names = pool_names or accountant.list_pools()
    failed = []

    for name in names:
        report = audit.verify_pool(name)
        print(f"Pool {name}: {'OK' if report['matches'] else 'MISMATCH'}")
        for field, difference in report["differences"].items():
            print(f"  {field}: stored={report['stored'][field]:.4f} "
                  f"expected={report['expected'][field]:.4f} diff={difference:.4f}")
        for violation in report["violations"]:
            print(f"  violation: {violation}")
        for duplicate in audit.find_duplicate_positions(name):
            print(f"  duplicate active positions: {duplicate}")

        if apply and report["differences"]:
            try:
                result = await audit.repair_pool(name)
            except LiquidityError as e:
                print(f"  repair failed: {e}")
                failed.append(name)
                continue
            print(f"  repaired, matches={result['after']['matches']}")
            for violation in result["after"]["violations"]:
                print(f"  still unresolved: {violation}")

    return failed


def main():
    parser = argparse.ArgumentParser(description="Verify and repair capital pool totals")
    parser.add_argument("--pool", action="append", dest="pools", help="Pool name (repeatable, default: all)")
    parser.add_argument("--apply", action="store_true", help="Rewrite stored totals")
    args = parser.parse_args()

    if args.apply:
        backup_path = _backup_sqlite(settings.DATABASE_URL)
        if backup_path:
            print(f"Backup created: {backup_path}")

    failed = asyncio.run(run(args.pools, args.apply))
    if failed:
        raise SystemExit(f"Repair failed for: {', '.join(failed)}")


if __name__ == "__main__":
    main()
