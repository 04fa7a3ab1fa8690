import logging
from fastapi import APIRouter, Depends
from typing import Annotated

from ...common.errors import MissingNotificationConfigError, NotificationFailedError
from ...core.container import AppContainer, get_container
from .schemas import EmailSettings, EmailSettingsResponse, EmailSettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/settings/email",
    tags=["Settings"],
)

Container = Annotated[AppContainer, Depends(get_container)]


def _to_response(settings: EmailSettings) -> EmailSettingsResponse:
    return EmailSettingsResponse(
        service_id=settings.service_id,
        template_id=settings.template_id,
        has_public_key=bool(settings.public_key),
        is_complete=settings.is_complete,
    )


@router.get("", response_model=EmailSettingsResponse)
async def read_email_settings(container: Container):
    return _to_response(container.email_settings.load())


@router.put("", response_model=EmailSettingsResponse)
async def update_email_settings(data: EmailSettingsUpdate, container: Container):
    settings = EmailSettings(**data.model_dump())
    container.email_settings.save(settings)
    logger.info("Email settings updated")
    return _to_response(settings)


@router.post("/test")
async def send_test_email(container: Container):
    settings = container.email_settings.load()
    if not settings.is_complete:
        raise MissingNotificationConfigError()
    sender = container.sender(settings)
    if not await sender.send_test_email():
        raise NotificationFailedError("Failed to send the test email.")
    return {"message": "Test email sent"}
