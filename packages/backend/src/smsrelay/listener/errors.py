"""Listener error taxonomy.

Learn: None of these are fatal. Lifecycle errors surface to whoever sent
the command; a missing subscriber is not an error at all (the event is
simply dropped).
"""


class SmsRelayError(Exception):
    """Base for every error raised by the listener core."""


class RegistrationError(SmsRelayError):
    """The source refused or failed the receiver registration.

    The listener stays idle.
    """


class DeregistrationError(SmsRelayError):
    """The source failed to release the registration.

    The listener is already idle when this is raised.
    """


class UnsupportedCommand(SmsRelayError):
    """Unknown command sent to the control channel."""

    def __init__(self, method: str):
        super().__init__(f"Unsupported command: {method}")
        self.method = method
