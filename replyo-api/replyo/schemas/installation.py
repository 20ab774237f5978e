from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class TriggerInstallRequest(BaseModel):
    business_id: UUID = Field(validation_alias=AliasChoices("business_id", "businessId"))
    force: bool = False
