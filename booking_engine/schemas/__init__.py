# booking_engine/schemas/__init__.py
from .task_payloads import (
    NotificationType,
    BookingNotificationPayload
)

from .availability import (
    AvailabilityRuleIn,
    ScheduleCreateRequest,
    ScheduleUpdateRequest,
    ScheduleRulesReplaceRequest,
    AvailabilityRuleResponse,
    ScheduleResponse,
    SlotResponse,
    SlotsResponse,
    SlotDayGroup,
    SlotRangeResponse
)

from .event_type import (
    CustomQuestion,
    EventTypeCreateRequest,
    EventTypeUpdateRequest,
    EventTypeResponse
)

from .booking import (
    BookingCreateRequest,
    BookingCancelRequest,
    BookingRescheduleRequest,
    AttendeeResponse,
    BookingResponse,
    EventTypeSummary,
    PublicBookingResponse,
    BookingTransitionResponse,
    PublicTransitionResponse,
    BookingListResponse
)
