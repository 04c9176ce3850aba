"""
Autobooking Worker Entry Point

Usage:
    PYTHONPATH=$PWD uv run python src/service/autobooking/driving_adapter/start_autobooking_worker.py

Runs the watch worker, the booking worker and the watch scheduler in one
anyio task group until SIGINT/SIGTERM.
"""

import signal

import anyio
from prometheus_client import start_http_server

from src.platform.config.core_setting import settings
from src.platform.config.di import cleanup, container
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import TracingConfig
from src.platform.state.redis_client import redis_client


async def main() -> None:
    """Main async entry point for the autobooking worker."""
    Logger.base.info('🚀 [Autobooking Worker] Starting...')

    tracing = TracingConfig(service_name='autobooking-worker')
    tracing.setup()
    tracing.instrument_redis()
    Logger.base.info('📊 [Autobooking Worker] OpenTelemetry configured')

    if settings.METRICS_PORT:
        start_http_server(settings.METRICS_PORT)
        Logger.base.info(f'📈 [Autobooking Worker] Metrics on :{settings.METRICS_PORT}/metrics')

    try:
        await redis_client.initialize()
        Logger.base.info('📡 [Autobooking Worker] Redis initialized')
    except Exception as e:
        Logger.base.error(f'❌ [Autobooking Worker] Failed to initialize Redis: {e}')
        raise

    # Tasks held by a crashed worker go back to wait
    for queue in (container.watch_queue(), container.booking_queue()):
        await queue.recover_active()

    watch_worker = container.watch_worker()
    booking_worker = container.booking_worker()
    scheduler = container.watch_scheduler()

    shutdown_event = anyio.Event()

    def shutdown_handler(signum: int) -> None:
        Logger.base.info(f'🛑 [Autobooking Worker] Received signal {signum}')
        shutdown_event.set()

    try:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:

            async def signal_watcher() -> None:
                async for signum in signals:
                    shutdown_handler(signum)
                    break

            async with anyio.create_task_group() as tg:
                tg.start_soon(signal_watcher)  # type: ignore[arg-type]
                tg.start_soon(watch_worker.run)
                tg.start_soon(booking_worker.run)
                tg.start_soon(scheduler.run)

                await shutdown_event.wait()

                Logger.base.info('🛑 [Autobooking Worker] Initiating graceful shutdown...')
                scheduler.stop()
                watch_worker.stop()
                booking_worker.stop()
                tg.cancel_scope.cancel()

    finally:
        try:
            await redis_client.disconnect()
            Logger.base.info('📡 [Autobooking Worker] Redis disconnected')
        except Exception as e:
            Logger.base.warning(f'⚠️ [Autobooking Worker] Error disconnecting Redis: {e}')

        cleanup()
        tracing.shutdown()
        Logger.base.info('👋 [Autobooking Worker] Shutdown complete')


if __name__ == '__main__':
    anyio.run(main)  # type: ignore[arg-type]
