"""httpx adapter for the GCM / FCM legacy HTTP endpoint, implementing the GatewaySender port."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from push_dispatch.config import settings
from push_dispatch.domain.ports.gateway_sender import GatewaySender
from push_dispatch.domain.push.errors import GCMTransportError

logger = logging.getLogger(__name__)

# payload keys whose wire name differs
_WIRE_KEYS = {"timeToLive": "time_to_live"}

# transport failures worth another attempt; anything else is fatal for the batch
_RETRYABLE_TRANSPORT_CODES = {"NetworkError", "Unavailable", "InvalidResponse"}

# per-token results the gateway asks us to resubmit
_RETRYABLE_RESULT_ERRORS = {"Unavailable", "InternalServerError"}


def to_wire_body(payload: Dict[str, Any], registration_tokens: Sequence[str]) -> Dict[str, Any]:
    body: Dict[str, Any] = {"registration_ids": list(registration_tokens)}
    for key, value in payload.items():
        body[_WIRE_KEYS.get(key, key)] = value
    return body


class HttpGCMSender(GatewaySender):
    """POSTs batches to the gateway, retrying with exponential backoff."""

    def __init__(
        self,
        api_key: str,
        *,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        backoff_initial: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        cfg = settings()
        self.api_key = api_key
        self._endpoint = endpoint or cfg.gcm_endpoint
        self._timeout = cfg.gcm_request_timeout_s if timeout is None else timeout
        self._backoff_initial = cfg.gcm_backoff_initial_s if backoff_initial is None else backoff_initial
        self._client = client
        self._headers = {
            "Authorization": f"key={api_key}",
            "Content-Type": "application/json",
        }

    # ───────────────────────── public API (port impl) ───────────────────────── #

    async def send(
        self,
        payload: Dict[str, Any],
        registration_tokens: Sequence[str],
        retries: int,
    ) -> Dict[str, Any]:
        tokens = list(registration_tokens)
        results: List[Optional[Dict[str, Any]]] = [None] * len(tokens)
        pending = list(range(len(tokens)))
        multicast_id = None
        attempt = 0

        while True:
            try:
                answer = await self._post(to_wire_body(payload, [tokens[i] for i in pending]))
            except GCMTransportError as e:
                if any(r is not None for r in results):
                    # a resubmission failed; keep what the first attempts returned
                    logger.warning(f"[gcm] retry of {len(pending)} tokens failed: {e.code}")
                    break
                if e.code not in _RETRYABLE_TRANSPORT_CODES or attempt >= retries:
                    raise
                logger.warning(f"[gcm] attempt {attempt + 1} failed ({e.code}), retrying")
            else:
                if multicast_id is None:
                    multicast_id = answer.get("multicast_id")
                still_pending = []
                for index, entry in zip(pending, answer.get("results") or []):
                    if not isinstance(entry, dict):
                        entry = {"error": "InvalidResponse"}
                    results[index] = entry
                    if entry.get("error") in _RETRYABLE_RESULT_ERRORS:
                        still_pending.append(index)
                pending = still_pending
                if not pending or attempt >= retries:
                    break
                logger.info(f"[gcm] {len(pending)} tokens unavailable, resubmitting")

            await asyncio.sleep(self._backoff_initial * 2 ** attempt)
            attempt += 1

        failure = sum(1 for r in results if r is None or r.get("error"))
        return {
            "multicast_id": multicast_id,
            "success": len(results) - failure,
            "failure": failure,
            "results": results,
        }

    # ───────────────────────── helpers ───────────────────────── #

    async def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            if self._client is not None:
                resp = await self._client.post(self._endpoint, headers=self._headers, json=body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(self._endpoint, headers=self._headers, json=body)
        except httpx.TransportError as e:
            raise GCMTransportError("NetworkError", str(e)) from e

        status = resp.status_code
        if status == 400:
            raise GCMTransportError("InvalidRequest", resp.text, status)
        if status == 401:
            raise GCMTransportError("AuthenticationError", "GCM rejected the api key", status)
        if status >= 500:
            raise GCMTransportError("Unavailable", f"GCM error {status}", status)
        if status != 200:
            raise GCMTransportError(f"HTTP{status}", resp.text, status)

        try:
            answer = resp.json()
        except ValueError as e:
            raise GCMTransportError("InvalidResponse", resp.text[:200], status) from e
        if not isinstance(answer, dict):
            raise GCMTransportError("InvalidResponse", f"unexpected GCM reply: {resp.text[:200]}", status)
        return answer
