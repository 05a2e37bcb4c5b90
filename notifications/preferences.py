"""Email preference rules for notification types"""
from domain.constants import NotificationType
from domain.models import NotificationSetting

# Setting toggle consulted for each notification type
TYPE_EMAIL_TOGGLES: dict[NotificationType, str] = {
    NotificationType.NEW_MESSAGE: "new_message_email",
    NotificationType.SEARCH_MATCH: "search_match_email",
    NotificationType.LISTING_INQUIRY: "listing_inquiry_email",
    NotificationType.LISTING_FAVORITED: "listing_favorited_email",
    NotificationType.REPORT_RESOLVED: "report_resolved_email",
    NotificationType.WEEKLY_DIGEST: "weekly_digest_email",
}


def email_enabled_for(notification_type: NotificationType, settings: NotificationSetting | None) -> bool:
    """Whether a notification of this type should also be emailed

    Only the email side-channel is gated; socket delivery is unconditional.
    Missing settings mean defaults.
    """
    if settings is None:
        settings = NotificationSetting(user_id=0)
    if not settings.email_notifications:
        return False
    toggle = TYPE_EMAIL_TOGGLES.get(notification_type)
    if toggle is None:
        return True
    return getattr(settings, toggle)
