from pydantic import BaseModel, Field
from typing import Dict, Optional

# Keys used when the settings are replicated through the remote store
SERVICE_ID_KEY = "emailServiceId"
TEMPLATE_ID_KEY = "emailTemplateId"
PUBLIC_KEY_KEY = "emailPublicKey"


class EmailSettings(BaseModel):
    service_id: Optional[str] = Field(None, description="EmailJS service id")
    template_id: Optional[str] = Field(None, description="EmailJS template id")
    public_key: Optional[str] = Field(None, description="EmailJS public key")

    @property
    def is_complete(self) -> bool:
        return bool(self.service_id and self.template_id and self.public_key)

    def as_remote_settings(self) -> Dict[str, str]:
        pairs = {
            SERVICE_ID_KEY: self.service_id,
            TEMPLATE_ID_KEY: self.template_id,
            PUBLIC_KEY_KEY: self.public_key,
        }
        return {key: value for key, value in pairs.items() if value}

    def merged_with_remote(self, remote: Dict[str, str]) -> "EmailSettings":
        """Remote values win for every key the remote store has."""
        return EmailSettings(
            service_id=remote.get(SERVICE_ID_KEY) or self.service_id,
            template_id=remote.get(TEMPLATE_ID_KEY) or self.template_id,
            public_key=remote.get(PUBLIC_KEY_KEY) or self.public_key,
        )


class EmailSettingsUpdate(BaseModel):
    service_id: str = Field(..., min_length=1)
    template_id: str = Field(..., min_length=1)
    public_key: str = Field(..., min_length=1)


class EmailSettingsResponse(BaseModel):
    service_id: Optional[str] = None
    template_id: Optional[str] = None
    has_public_key: bool = False
    is_complete: bool = False
