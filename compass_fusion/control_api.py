"""
Control API: TCP server exposing the pipeline's control surface.

Protocol: one JSON object per line in, one JSON object per line out.
- get_status: calibration state, sensor quality, declination, latest heading.
- start_calibration: begin a calibration cycle (no-op while one is running).
- cancel_calibration: abort a running cycle, keeping any previous bias.
- set_location: {"lat":float,"lon":float}, same as a location update.
"""

import json
import logging
import socket
from typing import Callable

from compass_fusion.pipeline import CompassPipeline
from compass_fusion.sources.messages import parse_location

logger = logging.getLogger(__name__)


def _handle_request(pipeline: CompassPipeline, request: object) -> dict:
    """Process one API request; return response dict."""
    if not isinstance(request, dict):
        return {"error": "invalid request"}

    if request.get("get_status"):
        return pipeline.get_status()

    if request.get("start_calibration"):
        started = pipeline.start_calibration()
        return {
            "status": "collecting",
            "started": started,
            "progress": pipeline.calibration_progress(),
        }

    if request.get("cancel_calibration"):
        pipeline.cancel_calibration()
        return {"ok": True, "is_calibrated": pipeline.is_calibrated()}

    set_location = request.get("set_location")
    if set_location is not None:
        if not isinstance(set_location, dict):
            return {"error": "set_location must be an object"}
        coordinate = parse_location(set_location)
        if coordinate is None:
            return {"error": "set_location needs numeric lat and lon"}
        declination = pipeline.on_location_update(coordinate)
        if declination is None:
            return {"error": "coordinate out of range"}
        return {
            "ok": True,
            "declination": declination.value,
            "declination_source": declination.source,
        }

    return {"error": "unknown request"}


def run_control_server(
    pipeline: CompassPipeline,
    host: str,
    port: int,
    shutdown: Callable[[], bool],
) -> None:
    """
    Run TCP server that handles control requests until shutdown() returns True.

    Call from a dedicated thread. Each client connection: one JSON line in,
    one JSON line out per request.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        logger.error("Control API bind failed %s:%s: %s", host, port, e)
        sock.close()
        return
    sock.listen(1)
    sock.settimeout(1.0)
    logger.info("Control API on %s:%s", host, port)

    while not shutdown():
        try:
            client, addr = sock.accept()
        except socket.timeout:
            continue
        except OSError:
            if shutdown():
                break
            continue
        try:
            client.settimeout(10.0)
            with client.makefile(mode="rw", encoding="utf-8") as f:
                for line in f:
                    if shutdown():
                        break
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        request = json.loads(line)
                    except (ValueError, RecursionError):
                        response = {"error": "invalid JSON"}
                    else:
                        try:
                            response = _handle_request(pipeline, request)
                        except Exception:
                            logger.exception("Control request failed")
                            response = {"error": "internal error"}
                    f.write(json.dumps(response) + "\n")
                    f.flush()
        except (ConnectionResetError, BrokenPipeError, OSError) as e:
            logger.debug("Control API client error: %s", e)
        finally:
            try:
                client.close()
            except OSError:
                pass

    try:
        sock.close()
    except OSError:
        pass
