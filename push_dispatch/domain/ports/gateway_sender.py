from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence


class GatewaySender(ABC):
    """Transport to the push gateway. Owns retry backoff; callers only pass a budget."""

    @abstractmethod
    async def send(
        self,
        payload: Dict[str, Any],
        registration_tokens: Sequence[str],
        retries: int,
    ) -> Dict[str, Any]:
        """Submit one batch.

        Returns the gateway response; `response["results"]` is parallel to
        `registration_tokens`, each entry either `{"message_id", ...}` or
        `{"error": <code>}`. Raises `GCMTransportError` when the batch as a
        whole could not be delivered to the gateway.
        """
        ...
