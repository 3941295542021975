"""Inbound webhook payloads from the integration platform."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EndUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    end_user_id: str = Field(alias="endUserId")
    email: Optional[str] = None


class WebhookBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    provider_config_key: str = Field(alias="providerConfigKey")
    connection_id: str = Field(alias="connectionId")
    success: bool = True
    model: Optional[str] = None
    operation: Optional[str] = None
    end_user: Optional[EndUser] = Field(default=None, alias="endUser")
    modified_after: Optional[datetime] = Field(default=None, alias="modifiedAfter")


class WebhookAck(BaseModel):
    received: bool = True
