"""SMS Relay — merge SMS delivery fragments and stream completed messages.

Listens to an SMS delivery source (in-process broadcasts or a Redis
gateway channel), coalesces multi-part messages per sender, and streams
each completed message to a single live subscriber over WebSocket.
"""

__version__ = "0.1.0"
