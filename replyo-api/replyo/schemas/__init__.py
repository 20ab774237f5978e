from replyo.schemas.billing import IgUsernameRequest, OnboardRequest
from replyo.schemas.conversation import ConversationMessageRequest, ConversationResetRequest
from replyo.schemas.instagram import CheckPageAccessRequest, ConnectInstagramRequest
from replyo.schemas.installation import TriggerInstallRequest

__all__ = [
    "OnboardRequest",
    "IgUsernameRequest",
    "ConnectInstagramRequest",
    "CheckPageAccessRequest",
    "ConversationMessageRequest",
    "ConversationResetRequest",
    "TriggerInstallRequest",
]
