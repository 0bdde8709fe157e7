"""
Store Verification Script

Verifies the integrity of the watch state kept by the file store.
Run from project root: python scripts/verify.py [--data-dir data]

Checks per namespace:
    - feed within its cap, no duplicate record ids, one record per order
    - ledger and assigned ids within their caps
    - last-check marker present and parseable

Author: Khalil Bannouri
Version: 4.0.0
"""

import argparse
import asyncio
import os
import sys
from collections import Counter
from datetime import datetime
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import ValidationError

from order_watch.core.config import get_settings
from order_watch.models import Ledger
from order_watch.schemas import NotificationRecord
from order_watch.services.storage import FileKeyValueStore, StorageError

FEED_SUFFIX = "_notifications"


async def verify_namespace(store: FileKeyValueStore, namespace: str) -> list[str]:
    """Return the problems found for one namespace."""
    settings = get_settings()
    problems = []

    try:
        raw_feed = await store.get(f"{namespace}{FEED_SUFFIX}") or []
        raw_ledger = await store.get(f"{namespace}_seen_orders") or {}
        raw_last_check = await store.get(f"{namespace}_last_check_time")
    except StorageError as e:
        return [f"unreadable: {e}"]

    try:
        feed = [NotificationRecord.model_validate(item) for item in raw_feed]
    except ValidationError as e:
        return [f"invalid feed record: {e.errors()[0]['msg']}"]
    ledger = Ledger.from_dict(raw_ledger)

    if len(feed) > settings.feed_cap:
        problems.append(f"feed has {len(feed)} records (cap {settings.feed_cap})")
    duplicate_ids = [i for i, n in Counter(r.id for r in feed).items() if n > 1]
    if duplicate_ids:
        problems.append(f"duplicate record ids: {duplicate_ids}")
    duplicate_orders = [o for o, n in Counter(r.order_id for r in feed).items() if n > 1]
    if duplicate_orders:
        problems.append(f"orders with more than one record: {duplicate_orders}")

    if len(ledger.statuses) > settings.ledger_cap:
        problems.append(f"ledger has {len(ledger.statuses)} entries (cap {settings.ledger_cap})")
    if len(ledger.assigned) > settings.assigned_cap:
        problems.append(f"{len(ledger.assigned)} assigned ids (cap {settings.assigned_cap})")

    if raw_last_check is None:
        problems.append("last-check marker missing")
    else:
        try:
            datetime.fromisoformat(raw_last_check)
        except (TypeError, ValueError):
            problems.append(f"last-check marker unparseable: {raw_last_check!r}")

    unread = sum(1 for r in feed if not r.read)
    print(f"\n📦 {namespace}")
    print(f"   Feed: {len(feed)} ({unread} unread) │ Ledger: {len(ledger.statuses)} │ Assigned: {len(ledger.assigned)}")
    return problems


def verify_store(data_dir: str) -> bool:
    """Verify every namespace found in the data directory."""

    print("=" * 60)
    print("🔍 STORE VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📁 Directory: {data_dir}")
    print("=" * 60)

    directory = Path(data_dir)
    if not directory.exists():
        print("\n❌ Data directory not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    namespaces = sorted(
        path.name[: -len(f"{FEED_SUFFIX}.json")]
        for path in directory.glob(f"*{FEED_SUFFIX}.json")
    )
    if not namespaces:
        print("\n⚠️ No stored feeds found")
        return True

    store = FileKeyValueStore(directory)
    failed = 0
    for namespace in namespaces:
        problems = asyncio.run(verify_namespace(store, namespace))
        if problems:
            failed += 1
            for problem in problems:
                print(f"   ⚠️ {problem}")
        else:
            print("   ✅ OK")

    print("\n" + "=" * 60)
    if failed:
        print(f"❌ {failed}/{len(namespaces)} namespace(s) with problems")
    else:
        print("✅ VERIFICATION COMPLETE")
    print("=" * 60)

    return failed == 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Store Verification Script")
    parser.add_argument("--data-dir", default=get_settings().data_directory)
    args = parser.parse_args()

    sys.exit(0 if verify_store(args.data_dir) else 1)
