"""SMS listener core — merge, dispatch, lifecycle, control channel.

Learn: Batches flow one way through the core:

  source → SmsReceiver → FragmentMerger → EventDispatcher → subscriber

ListenerLifecycle owns the registration with the source; CommandChannel
is the only thing outside the core that drives it.
"""
