"""Long-running worker: pulls bucket notifications and runs the pipeline.

A plain TCP listener on ``PORT`` answers every request with ``200 ok`` so
the hosting runtime can tell the worker is alive. SIGTERM and SIGINT stop
polling; the batch in flight gets ``SHUTDOWN_TIMEOUT_SECONDS`` to settle.
"""

import asyncio
import logging
import os
import signal
from asyncio import StreamReader, StreamWriter

from audio_meta.config import PipelineConfig
from audio_meta.observability.logger import setup_logging
from audio_meta.pipeline import MetadataPipeline
from audio_meta.queue.consumer import QueueConsumer

logger = logging.getLogger(__name__)

# Must stay below the runtime's grace period between SIGTERM and SIGKILL
SHUTDOWN_TIMEOUT_SECONDS = 25

_ALIVE_RESPONSE = (
    b"HTTP/1.1 200 OK\r\n"
    b"Content-Type: text/plain\r\n"
    b"Content-Length: 2\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"ok"
)


async def _health_handler(reader: StreamReader, writer: StreamWriter) -> None:
    """Reply ``ok`` to any request on the liveness port."""
    await reader.read(4096)
    writer.write(_ALIVE_RESPONSE)
    await writer.drain()
    writer.close()


async def _run(consumer: QueueConsumer, pipeline: MetadataPipeline) -> None:
    port = int(os.environ.get("PORT", "8080"))
    server = await asyncio.start_server(_health_handler, "0.0.0.0", port)
    logger.info("Liveness listener on port %d", port)

    worker = asyncio.create_task(consumer.run(pipeline.process_event))
    stopping = asyncio.Event()

    def _on_signal() -> None:
        logger.info("Shutdown requested, finishing current batch")
        consumer.stop()
        stopping.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _on_signal)

    await stopping.wait()
    try:
        # wait_for cancels the task itself once the deadline passes
        await asyncio.wait_for(worker, timeout=SHUTDOWN_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(
            "Batch still running after %ss, abandoning it; unsettled leases "
            "will be redelivered",
            SHUTDOWN_TIMEOUT_SECONDS,
        )
    server.close()
    await server.wait_closed()


def main() -> None:
    """Console entry point: validate configuration, then poll until signalled."""
    setup_logging()
    logger.info("Metadata pipeline starting")

    config = PipelineConfig.from_env()
    pipeline = MetadataPipeline.from_config(config)
    consumer = QueueConsumer()

    asyncio.run(_run(consumer, pipeline))


if __name__ == "__main__":
    main()
