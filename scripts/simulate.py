"""
Watch Simulation Script

Drives a watcher against a simulated order book and prints the feed and
badge counts after every cycle.

Run from project root:
    python scripts/simulate.py --role delivery --cycles 20
    python scripts/simulate.py --api http://localhost:8002 --cycles 10

Without --api the provider runs in-process on the file store in
--data-dir. With --api the script opens a session on a running server
(development mode) and polls its check/notifications endpoints.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import sys
import os
import argparse
import time
from datetime import datetime

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from order_watch.core.config import get_settings, setup_logging
from order_watch.engine import NotificationProvider, get_variant
from order_watch.schemas import NotificationRecord, RoleEnum
from order_watch.services.notifications import MockNotificationService
from order_watch.services.orders import MockOrderSource
from order_watch.services.storage import FileKeyValueStore


def print_feed(cycle: int, feed: list[NotificationRecord], unread: int, attention: int) -> None:
    print(f"\n🔄 Cycle {cycle} │ unread={unread} │ attention={attention} │ feed={len(feed)}")
    for record in feed[:5]:
        marker = "  " if record.read else "● "
        print(f"   {marker}{record.title:<28} {record.message}")
    if len(feed) > 5:
        print(f"   ... {len(feed) - 5} more")


# =============================================================================
# IN-PROCESS SIMULATION
# =============================================================================

async def simulate_in_process(role: RoleEnum, cycles: int, interval: float, data_dir: str, seed_orders: int) -> None:
    settings = get_settings()
    variant = get_variant(role, settings)
    source = MockOrderSource(
        split_history=variant.history_path is not None,
        simulate=True,
        history_window=settings.history_window,
    )
    notifier = MockNotificationService()
    provider = NotificationProvider(
        variant,
        source=source,
        store=FileKeyValueStore(data_dir),
        notifier=notifier,
        settings=settings,
        namespace=f"{variant.namespace}_simulation",
    )

    print("=" * 70)
    print(f"🧪 IN-PROCESS SIMULATION ({role.value})")
    print(f"   Cycles: {cycles} │ Interval: {interval}s │ Store: {data_dir}")
    print("=" * 70)

    await provider.open()
    await provider.controller.wait_idle()

    for _ in range(seed_orders):
        source.place_order()

    start = time.time()
    for cycle in range(1, cycles + 1):
        result = await provider.check_for_updates()
        if result is None:
            print(f"\n⚠️ Cycle {cycle} skipped")
        print_feed(cycle, provider.notifications, provider.unread_count, provider.attention_count)
        await asyncio.sleep(interval)

    await provider.close()

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"⏱️  Total Time: {round(time.time() - start, 2)}s")
    print(f"📦 Orders in book: {len(source.orders)}")
    print(f"🔔 Device notifications: {len(notifier.scheduled)}")
    print(f"💓 Heartbeats: {source.heartbeats}")
    print("\nRun: python scripts/verify.py to check the stored state")
    print("=" * 70)


# =============================================================================
# SERVER SIMULATION
# =============================================================================

async def simulate_against_api(base_url: str, role: RoleEnum, cycles: int, interval: float) -> bool:
    print("=" * 70)
    print(f"📡 SERVER SIMULATION ({role.value}) → {base_url}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        response = await client.get("/health")
        if response.status_code != 200:
            print(f"❌ Health check failed: {response.text}")
            return False
        print(f"✅ Status: {response.json().get('status')}")

        response = await client.post(
            "/api/sessions",
            json={"role": role.value, "token": "simulation", "user_id": "simulation"},
        )
        if response.status_code != 201:
            print(f"❌ Could not open session: {response.text}")
            return False
        session_id = response.json()["session_id"]
        print(f"✅ Session {session_id[:8]} opened")

        try:
            for cycle in range(1, cycles + 1):
                check = (await client.post(f"/api/sessions/{session_id}/check")).json()
                feed = (await client.get(f"/api/sessions/{session_id}/notifications")).json()
                records = [NotificationRecord.model_validate(r) for r in feed["notifications"]]
                if not check.get("applied"):
                    print(f"\n⚠️ Cycle {cycle} skipped")
                print_feed(cycle, records, feed["unread_count"], feed["attention_count"])
                await asyncio.sleep(interval)
        finally:
            await client.delete(f"/api/sessions/{session_id}")
            print(f"\n🧹 Session {session_id[:8]} closed")

    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Watch Simulation Script")
    parser.add_argument("--role", choices=[r.value for r in RoleEnum], default="delivery")
    parser.add_argument("--cycles", type=int, default=20, help="Number of diff cycles")
    parser.add_argument("--interval", type=float, default=0.5, help="Seconds between cycles")
    parser.add_argument("--seed-orders", type=int, default=3, help="Orders placed before the first cycle")
    parser.add_argument("--data-dir", default=get_settings().data_directory)
    parser.add_argument("--api", help="Base URL of a running server")
    args = parser.parse_args()

    setup_logging()
    print(f"⏰ {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    role = RoleEnum(args.role)
    if args.api:
        ok = asyncio.run(simulate_against_api(args.api, role, args.cycles, args.interval))
        sys.exit(0 if ok else 1)
    asyncio.run(simulate_in_process(role, args.cycles, args.interval, args.data_dir, args.seed_orders))
