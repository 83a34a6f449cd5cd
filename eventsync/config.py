import os
from dotenv import load_dotenv

load_dotenv()

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 4000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Comma separated, "*" allows any dashboard origin
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

STATUS_SWEEP_SECONDS = float(os.getenv("STATUS_SWEEP_SECONDS", 60))
REMINDER_LEAD_HOURS = float(os.getenv("REMINDER_LEAD_HOURS", 24))
INVITATION_DELAY_SECONDS = float(os.getenv("INVITATION_DELAY_SECONDS", 1))
NOTIFICATION_TTL_SECONDS = int(os.getenv("NOTIFICATION_TTL_SECONDS", 5))

# Optional external push endpoint for notices and reminders
PUSH_WEBHOOK_URL = os.getenv("PUSH_WEBHOOK_URL") or None
