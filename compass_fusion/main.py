"""
Main loop: feed samples from the remote or replay source through the heading
pipeline, stream NMEA heading sentences to TCP clients.
"""

import json
import logging
import select
import signal
import sys
import threading
import time
from typing import Optional, TextIO

from compass_fusion.config import Config, parse_args
from compass_fusion.control_api import run_control_server
from compass_fusion.nmea import result_to_nmea
from compass_fusion.output_server import HeadingTcpServer
from compass_fusion.pipeline import CompassPipeline
from compass_fusion.sources import create_remote_source, replay_lines

logger = logging.getLogger(__name__)

_shutdown = False


def _signal_handler(signum: int, frame: Optional[object]) -> None:
    global _shutdown
    _shutdown = True


def _log_progress(percent: int) -> None:
    if percent >= 100:
        logger.info("Calibration complete")
    else:
        logger.debug("Calibration %d%%", percent)


def run_replay(pipeline: CompassPipeline, stream: TextIO, out: TextIO) -> int:
    """Replay JSON lines from stream, writing one JSON result per line to out."""
    count = 0
    for result in replay_lines(pipeline, stream):
        out.write(json.dumps(result.to_dict()) + "\n")
        count += 1
    out.flush()
    logger.info("Replay produced %d heading result(s)", count)
    return 0


def _replay_file(config: Config, pipeline: CompassPipeline) -> int:
    if not config.replay_file or config.replay_file == "-":
        return run_replay(pipeline, sys.stdin, sys.stdout)
    try:
        with open(config.replay_file, encoding="utf-8") as f:
            return run_replay(pipeline, f, sys.stdout)
    except OSError as e:
        logger.error("Cannot read replay file %s: %s", config.replay_file, e)
        return 1


def run(config: Config) -> int:
    """
    Run the compass: remote samples in, NMEA heading out on TCP.

    Returns exit code (0 = success).
    """
    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    log_level = logging.DEBUG if config.debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    pipeline = CompassPipeline(config)
    pipeline.add_calibration_listener(_log_progress)

    if config.source == "replay":
        return _replay_file(config, pipeline)

    remote_source = create_remote_source(
        pipeline.on_raw_sample,
        pipeline.on_location_update,
        config.remote_host,
        config.remote_port,
    )
    if not remote_source:
        logger.error("Remote source bind failed")
        return 1

    if config.control_port > 0:
        threading.Thread(
            target=run_control_server,
            args=(
                pipeline,
                "127.0.0.1",
                config.control_port,
                lambda: _shutdown,
            ),
            daemon=True,
        ).start()

    server = HeadingTcpServer(host=config.nmea_host, port=config.nmea_port)
    if not server.start():
        remote_source.stop()
        return 1

    output_interval = 1.0 / config.output_rate_hz
    last_output_time = 0.0

    try:
        while not _shutdown:
            sock = server.get_socket()
            if sock:
                r, _, _ = select.select([sock], [], [], min(output_interval, 0.1))
                if r:
                    server.accept_new()

            now = time.monotonic()
            if (now - last_output_time) >= output_interval:
                last_output_time = now
                result = pipeline.latest_result()
                if result is not None:
                    server.broadcast(*result_to_nmea(result))

    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
        remote_source.stop()

    return 0


def main() -> None:
    """Entry point for the compass-fusion script."""
    config = parse_args()
    sys.exit(run(config))


if __name__ == "__main__":
    main()
