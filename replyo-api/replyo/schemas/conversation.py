from pydantic import AliasChoices, BaseModel, Field

DEFAULT_API_USER_ID = "api_test_user"


class ConversationMessageRequest(BaseModel):
    ig_username: str = Field(min_length=1, validation_alias=AliasChoices("ig_username", "igUsername"))
    message: str = Field(min_length=1)
    user_id: str = Field(default=DEFAULT_API_USER_ID, validation_alias=AliasChoices("user_id", "userId"))


class ConversationResetRequest(BaseModel):
    ig_username: str = Field(min_length=1, validation_alias=AliasChoices("ig_username", "igUsername"))
    user_id: str = Field(default=DEFAULT_API_USER_ID, validation_alias=AliasChoices("user_id", "userId"))
