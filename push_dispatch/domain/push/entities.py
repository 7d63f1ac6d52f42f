"""Push dispatch domain entities."""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


def _coerce_millis(value: Any) -> Optional[int]:
    """Epoch millis from an int or numeric string; raises ValueError otherwise."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"expiration_time must be epoch millis, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        return int(float(value.strip()))
    raise ValueError(f"expiration_time must be epoch millis, got {value!r}")


@dataclass(frozen=True)
class NotificationRequest:
    """Application-level push request, before it is turned into a gateway payload."""

    data: Mapping[str, Any]
    notification: Optional[Mapping[str, Any]] = None
    content_available: Optional[bool] = None
    expiration_time: Optional[int] = None   # absolute deadline, epoch millis

    def is_usable(self) -> bool:
        """True when there is a non-empty `data` mapping and a numeric (or no) deadline."""
        if not self.data or not isinstance(self.data, Mapping):
            return False
        return self.expiration_time is None or (
            isinstance(self.expiration_time, int) and not isinstance(self.expiration_time, bool)
        )

    @classmethod
    def from_mapping(cls, raw: Any) -> Optional["NotificationRequest"]:
        """Build from the dict form; returns None when the request is not usable."""
        if not isinstance(raw, Mapping):
            return None
        try:
            expiration_time = _coerce_millis(raw.get("expiration_time"))
        except (ValueError, OverflowError):
            return None
        request = cls(
            data=raw.get("data"),
            notification=raw.get("notification"),
            content_available=raw.get("content_available"),
            expiration_time=expiration_time,
        )
        return request if request.is_usable() else None


@dataclass(frozen=True)
class Device:
    device_token: str


@dataclass
class DispatchResult:
    """Outcome for one device, as reported by the gateway transport."""

    device: Device
    transmitted: bool
    error: Optional[str] = None
    multicast_id: Optional[int] = None
    response: Optional[Dict[str, Any]] = None
    device_type: str = "android"
