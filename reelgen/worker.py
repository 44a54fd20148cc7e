"""
Standalone queue worker

    python -m reelgen.worker

Consumes the video-generation queue without serving HTTP.
"""

import asyncio
import signal
from pathlib import Path

from .config import get_settings
from .dependencies import AppContainer
from .utils.logger import setup_logger

logger = setup_logger()


async def run_worker():
    settings = get_settings()
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)

    container = AppContainer.build(settings)
    await container.initialize()
    pool = container.worker_pool()

    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stopping.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stopping.set))

    await container.resume_monitors()
    await pool.start()
    logger.info(f"Worker running (concurrency={settings.job_worker_concurrency})")

    await stopping.wait()

    logger.info("Stopping worker...")
    await pool.stop(timeout=60)
    # Monitors are in-process and get one last poll interval before cancellation
    await container.jobs.wait_for_monitors(timeout=settings.monitor_poll_interval)
    await container.shutdown()


def main():
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
