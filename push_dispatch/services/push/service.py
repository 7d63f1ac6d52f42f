"""GCM dispatch service: batching, fan-out and per-device result reconciliation."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from push_dispatch.config import settings
from push_dispatch.domain.ports.gateway_sender import GatewaySender
from push_dispatch.domain.push.entities import Device, DispatchResult, NotificationRequest
from push_dispatch.domain.push.errors import GCMTransportError, InvalidGCMConfiguration
from push_dispatch.infrastructure.notifications.gcm_http_sender import HttpGCMSender
from push_dispatch.services.push.payload import build_gcm_payload, generate_push_id, now_millis

logger = logging.getLogger(__name__)

# Retries the sender may spend on transient transport failures, per batch.
GCM_RETRY_BUDGET = 5


def slice_devices(devices: Sequence[Device], chunk_size: int) -> List[List[Device]]:
    """Split `devices` into consecutive chunks of `chunk_size`; the last may be shorter."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [list(devices[i:i + chunk_size]) for i in range(0, len(devices), chunk_size)]


def _token_hint(token: str) -> str:
    if len(token) <= 16:
        return token
    return f"{token[:12]}...{token[-4:]}"


class GCMDispatchService:
    """Sends one notification to many devices through the GCM gateway."""

    def __init__(
        self,
        api_key: str,
        *,
        sender: Optional[GatewaySender] = None,
        max_tokens_per_request: Optional[int] = None,
    ):
        if not isinstance(api_key, str) or not api_key:
            raise InvalidGCMConfiguration("GCM configuration requires a non-empty api key")

        if max_tokens_per_request is None:
            max_tokens_per_request = settings().gcm_registration_tokens_max
        if max_tokens_per_request < 1:
            raise InvalidGCMConfiguration(
                f"max_tokens_per_request must be positive, got {max_tokens_per_request}"
            )

        if sender is None:
            sender = HttpGCMSender(api_key)

        self.api_key = api_key
        self.sender = sender
        self.max_tokens_per_request = max_tokens_per_request

    @classmethod
    def from_args(cls, args: Any, **kwargs) -> "GCMDispatchService":
        """Build from the `{"apiKey": ...}` mapping form used by push configuration."""
        if not isinstance(args, Mapping) or "apiKey" not in args:
            raise InvalidGCMConfiguration(
                "GCM configuration is invalid, expected a mapping with an 'apiKey'"
            )
        return cls(args["apiKey"], **kwargs)

    async def send(
        self,
        request: Union[NotificationRequest, Mapping[str, Any], None] = None,
        devices: Sequence[Device] = (),
    ) -> Optional[List[DispatchResult]]:
        """
        Push `request` to every device and return one result per device, in input order.

        A missing or malformed request is logged and ignored (returns None) so a
        caller pushing many notifications is not brought down by one bad entry.
        """
        if not isinstance(request, NotificationRequest):
            request = NotificationRequest.from_mapping(request)
        if request is None or not request.is_usable():
            logger.warning("[gcm] invalid push payload, nothing sent")
            return None

        if not devices:
            return []

        timestamp = now_millis()
        push_id = generate_push_id()
        payload = build_gcm_payload(request, push_id, timestamp, request.expiration_time)

        batches = slice_devices(devices, self.max_tokens_per_request)
        if len(batches) > 1:
            logger.info(
                f"[gcm] {len(devices)} devices exceed {self.max_tokens_per_request} per request, "
                f"sending {len(batches)} batches"
            )

        # fan out, then join; gather keeps batch order regardless of completion order
        batch_results = await asyncio.gather(
            *(self._send_batch(payload, batch) for batch in batches)
        )

        results: List[DispatchResult] = []
        for batch_result in batch_results:
            results.extend(batch_result)
        return results

    async def _send_batch(
        self,
        payload: Dict[str, Any],
        batch: List[Device],
    ) -> List[DispatchResult]:
        tokens = [device.device_token for device in batch]
        try:
            response = await self.sender.send(payload, tokens, GCM_RETRY_BUDGET)
        except GCMTransportError as e:
            logger.error(f"[gcm] send errored for batch of {len(batch)} devices: {e.code} {e}")
            return [
                DispatchResult(device=device, transmitted=False, error=e.code)
                for device in batch
            ]

        multicast_id = response.get("multicast_id")
        entries = response.get("results") or []
        logger.debug(f"[gcm] batch of {len(batch)} answered, multicast_id={multicast_id}")

        results = []
        for index, device in enumerate(batch):
            entry = entries[index] if index < len(entries) else None
            if entry is None:
                logger.error(f"[gcm] no result for token {_token_hint(device.device_token)}")
                results.append(
                    DispatchResult(device=device, transmitted=False, multicast_id=multicast_id)
                )
                continue

            error = entry.get("error")
            if error:
                logger.info(f"[gcm] token {_token_hint(device.device_token)} rejected: {error}")
            results.append(
                DispatchResult(
                    device=device,
                    transmitted=not error,
                    error=error,
                    multicast_id=multicast_id,
                    response=entry,
                )
            )
        return results
