from .admin_account import AdminAccount
from .event import Event, EventTimeSlot
from .event_participant import EventParticipant
from .feedback import Feedback
from .matching import EventMatchingConfig, EventMatchRecommendation
from .meeting import EventMeeting, EventMeetingMessage, MeetingReadState
from .notification import Notification, NotificationReceipt
from .profile import BusinessCard, CollectedCard, UserProfile
from .user import Role, User

__all__ = [
    "AdminAccount",
    "BusinessCard",
    "CollectedCard",
    "Event",
    "EventMatchRecommendation",
    "EventMatchingConfig",
    "EventMeeting",
    "EventMeetingMessage",
    "EventParticipant",
    "EventTimeSlot",
    "Feedback",
    "MeetingReadState",
    "Notification",
    "NotificationReceipt",
    "Role",
    "User",
    "UserProfile",
]
