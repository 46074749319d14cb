from typing import List, Optional

import httpx
import structlog
from pydantic import TypeAdapter

from app.core.config import settings
from app.schemas.calendar import PeerAppointment

logger = structlog.get_logger(__name__)

_appointment_list = TypeAdapter(List[PeerAppointment])


class PeerSchedulingClient:
    """HTTP client for the peer scheduling service's appointment listing."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.PEER_SCHEDULING_URL).rstrip("/")
        self.service_key = service_key or settings.PEER_SERVICE_KEY
        self.timeout = (
            settings.PEER_SCHEDULING_TIMEOUT_SECONDS if timeout is None else timeout
        )
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.service_key:
            headers["X-Service-Key"] = self.service_key
        return headers

    async def get_scheduled_appointments(
        self, professional_id: str, date: str
    ) -> List[PeerAppointment]:
        """List the peer's appointments for a professional on a ``YYYY-MM-DD`` day.

        Transport failures and non-2xx answers raise ``httpx.HTTPError``;
        an unreadable body or appointment list raises ``ValueError``
        (pydantic's ``ValidationError`` included).
        """
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.get(
                f"{self.base_url}/api/appointments",
                params={"professional_id": professional_id, "date": date},
                headers=self._headers(),
            )
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict):
            raise ValueError("Unexpected peer scheduling response body")
        if not payload.get("success") or not payload.get("data"):
            return []

        appointments = _appointment_list.validate_python(payload["data"])
        logger.debug(
            "Scheduled appointments retrieved from peer",
            professional_id=professional_id,
            date=date,
            count=len(appointments),
        )
        return appointments
