from typing import Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class ConnectInstagramRequest(BaseModel):
    subscription_id: UUID = Field(validation_alias=AliasChoices("subscription_id", "subscriptionId"))
    instagram_page_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("instagram_page_id", "instagramPageId"),
    )
    page_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("page_name", "pageName"))
    access_token: Optional[str] = Field(default=None, validation_alias=AliasChoices("access_token", "accessToken"))


class CheckPageAccessRequest(BaseModel):
    instagram_page_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("instagram_page_id", "instagramPageId"),
    )
