"""Тексты бота (без i18n, простые константы)."""

WELCOME_TEXT = (
    "🤖 Welcome!\n\n"
    "Open a direct link from the channel or send me a file key to get the file."
)

HELP_TEXT = (
    "🔑 Send a file key (e.g. 123456789) or open a direct link.\n"
    "Files are removed from this chat shortly after delivery, "
    "forward them to Saved Messages to keep them."
)

NOT_FOUND_TEXT = "⚠️ File not found or no longer available."
DELIVERY_FAILED_TEXT = "⚠️ Could not send the file right now. Please try again in a minute."
ERROR_TEXT = "⚠️ Something went wrong while processing your request. Please try again later."
NOT_A_KEY_TEXT = "🔍 Send a file key or open a direct link from the channel."

RECHECK_NOT_MEMBER_ALERT = "⚠️ You haven't joined all the channels yet. Join them, then press the button again."
RECHECK_NOTHING_PENDING_TEXT = "✅ Membership confirmed.\n\nOpen the direct link of the file you want to get it."
RECHECK_DONE_ALERT = "✅ Membership confirmed"
