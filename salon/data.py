# salon/data.py

from salon.config import settings

# Site settings created on first start; admins edit them through /settings
DEFAULT_SITE_SETTINGS = {
    "admin_email": settings.default_admin_notification_email,
    "instagram_url": "",
    "whatsapp_url": "",
    "facebook_url": "",
}

# Reminder window, relative to "now"
REMINDER_WINDOW_START_MINUTES = 60
REMINDER_WINDOW_END_MINUTES = 120
