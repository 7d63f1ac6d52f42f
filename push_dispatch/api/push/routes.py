"""FastAPI routes for dispatching GCM pushes."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from push_dispatch.api.push.schemas import PushCreate, PushResultList, PushResultRead
from push_dispatch.dependencies import get_gcm_dispatch_service
from push_dispatch.domain.push.entities import Device, NotificationRequest
from push_dispatch.services.push.service import GCMDispatchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["push"])


@router.post("/", response_model=PushResultList, response_model_by_alias=True)
async def send_push(
    body: PushCreate,
    service: GCMDispatchService = Depends(get_gcm_dispatch_service),
):
    """Push one notification to every listed device.

    Results come back in the same order as `devices`; per-device gateway
    errors are reported in the matching entry rather than failing the call.
    """
    request = NotificationRequest(
        data=body.request.data,
        notification=body.request.notification,
        content_available=body.request.content_available,
        expiration_time=body.request.expiration_time,
    )
    devices = [Device(device_token=d.device_token) for d in body.devices]

    try:
        logger.info(f"[push] send: devices={len(devices)}")
        results = await service.send(request, devices) or []
    except Exception as e:
        logger.error(f"Error dispatching push to {len(devices)} devices: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to dispatch push"
        )

    return PushResultList(
        results=[
            PushResultRead(
                device_token=r.device.device_token,
                transmitted=r.transmitted,
                error=r.error,
            )
            for r in results
        ],
        total_count=len(results),
    )
