"""
Configuration for the instrumentation runtime.
"""

RUNTIME_CONFIG = {
    "reconnect_delay": 1.0,    # Seconds between devtool connection attempts
    "open_timeout": 5.0,
    "close_timeout": 2.0,
    "poll_interval": 0.05,     # recv() timeout while waiting for backend messages
    "flush_timeout": 5.0,      # How long close() waits for queued messages
}
