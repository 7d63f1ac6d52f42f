"""Build GCM payloads from notification requests."""
from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from push_dispatch.domain.push.entities import NotificationRequest

# Longest time-to-live the gateway accepts: four weeks, in seconds.
GCM_TIME_TO_LIVE_MAX = 4 * 7 * 24 * 60 * 60

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_PUSH_ID_ALPHABET = string.ascii_letters + string.digits


def now_millis() -> int:
    return int(time.time() * 1000)


def generate_push_id(length: int = 10) -> str:
    return "".join(secrets.choice(_PUSH_ID_ALPHABET) for _ in range(length))


def iso_timestamp(timestamp: int) -> str:
    """Epoch millis -> `2016-02-03T22:33:42.113Z`."""
    moment = _EPOCH + timedelta(milliseconds=timestamp)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compute_time_to_live(timestamp: int, expiration_time: int) -> int:
    ttl = (expiration_time - timestamp) // 1000
    if ttl < 0:
        return 0
    return min(ttl, GCM_TIME_TO_LIVE_MAX)


def build_gcm_payload(
    request: NotificationRequest,
    push_id: str,
    timestamp: Optional[int] = None,
    expiration_time: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Translate `request` into the payload handed to the gateway sender.

    `request.data` is nested verbatim under `data.data`; `notification` and
    `content_available` are passed through untouched when present. Without an
    `expiration_time` no `timeToLive` is set and the gateway default applies.
    """
    if timestamp is None:
        timestamp = now_millis()

    payload: Dict[str, Any] = {
        "priority": "high",
        "data": {
            "data": request.data,
            "push_id": push_id,
            "time": iso_timestamp(timestamp),
        },
    }
    if request.notification is not None:
        payload["notification"] = request.notification
    if request.content_available is not None:
        payload["content_available"] = request.content_available

    if expiration_time is not None:
        payload["timeToLive"] = compute_time_to_live(timestamp, expiration_time)

    return payload
