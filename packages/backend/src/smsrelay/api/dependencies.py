"""Shared route dependencies."""

from fastapi import Request

from smsrelay.relay import SmsRelay


def get_relay(request: Request) -> SmsRelay:
    """The app's listener wiring, built in the lifespan."""
    return request.app.state.relay
