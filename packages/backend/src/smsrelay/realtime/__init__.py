"""Real-time infrastructure — subscribers for the dispatcher.

Learn: Completed messages leave the core through exactly one subscriber:
1. WebSocketSink → the connected client on /ws/sms (API server)
2. RedisEventSink → the smsrelay:events channel (standalone listener)

Both queue on the event loop and drain in a single task, so events keep
the order the dispatcher produced them in.
"""
