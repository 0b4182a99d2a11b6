from .auth import AdminLogin, AdminToken, RefreshTokenRequest, TokenPair, UserCreate, UserLogin, UserRead
from .event import EventCreate, EventRead, EventUpdate, TimeSlotCreate, TimeSlotRead
from .matching import (
    AIRecommendationRequest,
    AIRecommendationResponse,
    MatchingConfigRead,
    MatchingConfigUpdate,
    MatchingRunResult,
    RecommendationList,
)
from .meeting import (
    MeetingCreate,
    MeetingListItem,
    MeetingRead,
    MeetingStatusUpdate,
    MessageCreate,
    MessagePage,
    MessageRead,
    ReadReceipt,
)
from .notification import (
    AdminNotificationCreate,
    NoticeCreate,
    NotificationPage,
    NotificationRead,
    UnreadCount,
    UserNotificationCreate,
)
from .participant import (
    AdminParticipantsRequest,
    JoinEventRequest,
    LeaveEventRequest,
    ParticipantRead,
    ProfileSummary,
    RemoveParticipantRequest,
)
from .profile import (
    BusinessCardRead,
    CardVisibilityUpdate,
    CollectCardRequest,
    CollectedCardRead,
    CollectedCardUpdate,
    ProfileRead,
    ProfileUpdate,
)
from .report import (
    CollectionTimeline,
    CollectionTimelineRequest,
    ConnectionCount,
    EventReport,
    EventReportRequest,
    FeedbackCreate,
    FeedbackRead,
)

__all__ = [
    "AIRecommendationRequest",
    "AIRecommendationResponse",
    "AdminLogin",
    "AdminNotificationCreate",
    "AdminParticipantsRequest",
    "AdminToken",
    "BusinessCardRead",
    "CardVisibilityUpdate",
    "CollectCardRequest",
    "CollectedCardRead",
    "CollectedCardUpdate",
    "CollectionTimeline",
    "CollectionTimelineRequest",
    "ConnectionCount",
    "EventCreate",
    "EventRead",
    "EventReport",
    "EventReportRequest",
    "EventUpdate",
    "FeedbackCreate",
    "FeedbackRead",
    "JoinEventRequest",
    "LeaveEventRequest",
    "MatchingConfigRead",
    "MatchingConfigUpdate",
    "MatchingRunResult",
    "MeetingCreate",
    "MeetingListItem",
    "MeetingRead",
    "MeetingStatusUpdate",
    "MessageCreate",
    "MessagePage",
    "MessageRead",
    "NoticeCreate",
    "NotificationPage",
    "NotificationRead",
    "ParticipantRead",
    "ProfileRead",
    "ProfileSummary",
    "ProfileUpdate",
    "ReadReceipt",
    "RecommendationList",
    "RefreshTokenRequest",
    "RemoveParticipantRequest",
    "TimeSlotCreate",
    "TimeSlotRead",
    "TokenPair",
    "UnreadCount",
    "UserCreate",
    "UserLogin",
    "UserNotificationCreate",
    "UserRead",
]
