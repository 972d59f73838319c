"""
Run the daily bonus once from the command line, without the HTTP service.
Reads BAHAMUT_* / TELEGRAM_* from .env; pass --force to ignore today's stored result,
or --server URL to hit a running service's /trigger endpoint instead.
"""
import argparse
import asyncio
import os
import sys

import httpx

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from dotenv import load_dotenv
load_dotenv()

from bonus.config import MissingCredentials, Settings
from bonus.database import close_db
from bonus.jobs import run_daily


async def run_local(force: bool) -> int:
    settings = Settings()
    print(f"[run] uid={settings.bahamut_uid or '?'} totp={'yes' if settings.bahamut_totp else 'no'} "
          f"notify={'yes' if settings.notifications_enabled else 'no'}")
    try:
        report = await run_daily(settings, force=force)
    except MissingCredentials as exc:
        print(f"[run] {exc}")
        return 2
    finally:
        await close_db()

    for line in report.messages:
        print(f"[run]   {line}")
    print(f"\n[run] {'DONE ✓' if report.success else 'FAILED ✗'}  at {report.timestamp.isoformat()}")
    return 0 if report.success else 1


async def run_remote(server: str, force: bool) -> int:
    async with httpx.AsyncClient(base_url=server, timeout=120) as client:
        r = await client.post("/trigger", params={"force": str(force).lower()})
        print(f"[run] POST /trigger -> {r.status_code}")
        data = r.json()
        for line in data.get("results", []):
            print(f"[run]   {line}")
        if "detail" in data:
            print(f"[run]   {data['detail']}")
        return 0 if r.is_success else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--force", action="store_true")
    parser.add_argument("--server", default=os.getenv("SERVER_URL", ""))
    args = parser.parse_args()
    if args.server:
        sys.exit(asyncio.run(run_remote(args.server, args.force)))
    sys.exit(asyncio.run(run_local(args.force)))
