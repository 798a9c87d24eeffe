"""Event type constants.

Learn: Centralizing event types as constants prevents typos and
makes it easy to discover all event types in the system.
"""

# ─── Source topics ──────────────────────────────────────

# Broadcast action the host raises for every incoming SMS delivery
SMS_RECEIVED_ACTION = "android.provider.Telephony.SMS_RECEIVED"

# ─── Event surface ──────────────────────────────────────

SMS_RECEIVED = "sms.received"

# ─── Listener lifecycle ─────────────────────────────────

LISTENER_STARTED = "listener.started"
LISTENER_STOPPED = "listener.stopped"
