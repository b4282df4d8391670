"""Device registration API endpoint."""
import logging

from fastapi import APIRouter, Depends

from ..dependencies import get_registry, require_api_key
from ..schemas import DeviceInfo, DeviceRegisterRequest, DeviceRegisterResponse
from ..services import DeviceRegistry
from ..services.validator import validate_device

logger = logging.getLogger(__name__)

router = APIRouter(tags=["devices"], dependencies=[Depends(require_api_key)])


@router.post("/register-device", response_model=DeviceRegisterResponse)
async def register_device(
    request: DeviceRegisterRequest,
    registry: DeviceRegistry = Depends(get_registry),
):
    """Register a device for push notifications.

    Apps call this on every launch; an existing token is updated in place
    and keeps its id.
    """
    validate_device(request.token, request.platform, request.user_id)

    device = await registry.register_device(request.token, request.platform, request.user_id)

    return DeviceRegisterResponse(device=DeviceInfo.model_validate(device))
