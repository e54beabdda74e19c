# shared/heartbeat.py
"""
Threaded heartbeat emitter.

Runs outside asyncio on a daemon thread. Each pulse sets
`<service>:heartbeat` on the system bus with a TTL and publishes the same
payload on the heartbeat channel, so both pollers and subscribers see it.
"""

import json
import os
import threading
import time
from typing import Any, Callable, Dict, Optional

import redis


def _resolve_target(service_name: str, config: Dict[str, Any]) -> Dict[str, Any]:
    hb = config.get("heartbeat", {}) or {}
    buses = config.get("buses", {}) or {}

    url = (
        hb.get("url")
        or (buses.get("system-redis") or {}).get("url")
        or os.getenv("SYSTEM_REDIS_URL", "redis://127.0.0.1:6379")
    )
    return {
        "url": url,
        "key": hb.get("key", f"{service_name}:heartbeat"),
        "channel": hb.get("channel", "heartbeats"),
        "interval": float(hb.get("interval_sec", hb.get("frequency", 5))),
        "ttl": int(hb.get("ttl_sec", 15)),
    }


def start_heartbeat(
    service_name: str,
    config: Dict[str, Any],
    logger,
    payload_fn: Optional[Callable[[], Dict[str, Any]]] = None,
    client: Optional[redis.Redis] = None,
) -> threading.Event:
    """
    Start the heartbeat thread. Returns the stop event; set it to exit.

    Redis errors are logged and retried on the next pulse; the heartbeat
    never takes the service down.
    """
    target = _resolve_target(service_name, config)
    r = client or redis.Redis.from_url(target["url"], decode_responses=True)
    stop = threading.Event()

    def pulse() -> None:
        body = {"service": service_name, "status": "alive", "ts": time.time()}
        if payload_fn:
            body.update(payload_fn())
        msg = json.dumps(body)
        r.setex(target["key"], target["ttl"], msg)
        r.publish(target["channel"], msg)

    def loop() -> None:
        while not stop.is_set():
            try:
                pulse()
                logger.debug("heartbeat sent", emoji="❤️")
            except redis.RedisError as e:
                logger.warn(f"heartbeat failed: {e}")
            stop.wait(target["interval"])
        logger.info("heartbeat stopped", emoji="🛑")

    thread = threading.Thread(target=loop, name=f"{service_name}-heartbeat", daemon=True)
    thread.start()
    logger.info(
        f"heartbeat started (key={target['key']}, every {target['interval']:g}s)",
        emoji="❤️",
    )
    return stop
