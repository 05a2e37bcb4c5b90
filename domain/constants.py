"""Domain constants: notification types and wire event names"""
from enum import Enum


class NotificationType(str, Enum):
    """Kinds of notification a user can receive"""
    NEW_MESSAGE = "NEW_MESSAGE"
    SEARCH_MATCH = "SEARCH_MATCH"
    LISTING_INQUIRY = "LISTING_INQUIRY"
    LISTING_FAVORITED = "LISTING_FAVORITED"
    REPORT_RESOLVED = "REPORT_RESOLVED"
    WEEKLY_DIGEST = "WEEKLY_DIGEST"


# Client -> server events
EVENT_JOIN_CONVERSATION = "join_conversation"
EVENT_LEAVE_CONVERSATION = "leave_conversation"
EVENT_SEND_MESSAGE = "send_message"
EVENT_TYPING_START = "typing_start"
EVENT_TYPING_STOP = "typing_stop"
EVENT_MARK_MESSAGES_READ = "mark_messages_read"
EVENT_MARK_NOTIFICATION_READ = "mark_notification_read"
EVENT_MARK_ALL_NOTIFICATIONS_READ = "mark_all_notifications_read"
EVENT_GET_NOTIFICATION_COUNT = "get_notification_count"

# Server -> client events
EVENT_NEW_MESSAGE = "new_message"
EVENT_MESSAGE_SENT = "message_sent"
EVENT_MESSAGE_NOTIFICATION = "message_notification"
EVENT_MESSAGE_ERROR = "message_error"
EVENT_USER_TYPING = "user_typing"
EVENT_USER_STOPPED_TYPING = "user_stopped_typing"
EVENT_MESSAGES_READ = "messages_read"
EVENT_MESSAGES_MARKED_READ = "messages_marked_read"
EVENT_NEW_NOTIFICATION = "new_notification"
EVENT_NOTIFICATION_COUNT_UPDATED = "notification_count_updated"
EVENT_NOTIFICATION_MARKED_READ = "notification_marked_read"
EVENT_ALL_NOTIFICATIONS_MARKED_READ = "all_notifications_marked_read"
EVENT_NOTIFICATION_ERROR = "notification_error"
EVENT_ERROR = "error"

# WebSocket close codes used when refusing a handshake
WS_CLOSE_POLICY_VIOLATION = 1008
WS_CLOSE_INTERNAL_ERROR = 1011

# Error reasons surfaced to clients
ERROR_TOKEN_REQUIRED = "Authentication token required"
ERROR_INVALID_TOKEN = "Invalid authentication token"
ERROR_INVALID_USER = "Invalid or unverified user"
ERROR_CONTENT_REQUIRED = "Message content is required"
ERROR_RECEIVER_NOT_FOUND = "Receiver not found"
ERROR_SELF_MESSAGE = "Cannot send message to yourself"
ERROR_LISTING_NOT_FOUND = "Listing not found"
ERROR_SEND_FAILED = "Failed to send message"
ERROR_MARK_MESSAGES_FAILED = "Failed to mark messages as read"
ERROR_NOTIFICATION_NOT_FOUND = "Notification not found"
ERROR_MARK_NOTIFICATION_FAILED = "Failed to mark notification as read"
ERROR_MARK_ALL_NOTIFICATIONS_FAILED = "Failed to mark all notifications as read"
ERROR_NOTIFICATION_COUNT_FAILED = "Failed to get notification count"
ERROR_INVALID_FORMAT = "Invalid message format"
