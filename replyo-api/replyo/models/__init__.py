from replyo.models.aggregated_stats import AggregatedStats
from replyo.models.business_profile import BusinessProfile
from replyo.models.business_stats import BusinessStats
from replyo.models.conversation import Conversation
from replyo.models.conversation_message import ConversationMessage
from replyo.models.installation import Installation, InstallationStatus
from replyo.models.instagram_page import InstagramPage
from replyo.models.scheduled_job import ScheduledJob
from replyo.models.subscription import Subscription, SubscriptionStatus

__all__ = [
    "BusinessProfile",
    "Subscription",
    "SubscriptionStatus",
    "InstagramPage",
    "Installation",
    "InstallationStatus",
    "Conversation",
    "ConversationMessage",
    "BusinessStats",
    "AggregatedStats",
    "ScheduledJob",
]
