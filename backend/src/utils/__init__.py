"""
Utility modules for the TeamRSVP backend.

This package contains shared utilities used across the application:
- logging_config: Channel loggers (api, services, scheduler, feed, db)
- time_utils: Club-local wall-clock helpers
"""
