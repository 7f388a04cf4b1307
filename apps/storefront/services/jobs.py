import logging
from typing import Awaitable, Callable, List

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler

log = logging.getLogger("picklish.jobs")


def schedule_subscription_sweep(
    scheduler: AsyncIOScheduler,
    sweep: Callable[[], Awaitable[dict]],
    interval_hours: int = 24,
):
    """
    Registers the delivery roll-forward / pause expiry sweep.
    `sweep` builds its own service so each run sees a fresh store client.
    """

    async def run_sweep():
        try:
            await sweep()
        except Exception:
            log.exception("subscription sweep failed")

    scheduler.add_job(
        run_sweep,
        "interval",
        hours=interval_hours,
        id="subscription_sweep",
        replace_existing=True,
    )
    log.info("subscription sweep registered, interval = %s hours", interval_hours)


async def ping_all(urls: List[str]) -> dict:
    results = {}
    async with httpx.AsyncClient(timeout=10.0) as client:
        for url in urls:
            try:
                r = await client.get(url)
                results[url] = r.status_code
            except httpx.HTTPError as e:
                log.debug("keepalive ping %s failed: %s", url, e)
                results[url] = None
    return results


def schedule_keepalive(scheduler: AsyncIOScheduler, urls: List[str], interval_seconds: int = 300):
    urls = [u for u in urls if u]
    if not urls:
        log.info("no keepalive URLs configured")
        return

    async def run_ping():
        await ping_all(urls)

    scheduler.add_job(
        run_ping,
        "interval",
        seconds=interval_seconds,
        id="keepalive_multi",
        replace_existing=True,
    )
    log.info("keepalive registered for %s URLs, interval = %s seconds", len(urls), interval_seconds)
