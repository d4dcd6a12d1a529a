#!/usr/bin/env python3
"""Default settings for the configuration stream listener.

These constants control the exponential backoff behavior for reconnection,
the HTTP timeouts, and the resource bounds of the decode/dispatch pipeline.
ListenerConfig uses them as field defaults.
"""

# Retry parameters for exponential backoff reconnection.
# Delay before the first reconnect in seconds (delay = base * 2^attempt).
BASE_DELAY: float = 2.0

# Maximum delay between connection attempts in seconds.
MAX_DELAY: float = 60.0

# Relative jitter applied to each delay (0.1 means +/- 10%).
JITTER_FACTOR: float = 0.1

# Consecutive failed reconnects tolerated before giving up.
DEFAULT_MAX_RETRIES: int = 5

# Seconds allowed for TCP/TLS connection establishment.
CONNECT_TIMEOUT: float = 10.0

# Seconds without any bytes (including keep-alive comments) before the
# connection is considered dead.
READ_TIMEOUT: float = 60.0

# Maximum size of a single event in bytes (1 MiB).
# Prevents memory exhaustion from a malformed or unterminated stream.
MAX_EVENT_SIZE: int = 1048576

# Capacity of the queue between the reader and the handler.
DISPATCH_QUEUE_SIZE: int = 64

USER_AGENT: str = "confstream/0.1"

# Media type requested in the Accept header.
EVENT_STREAM_MEDIA_TYPE: str = "text/event-stream"
