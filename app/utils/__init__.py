"""
UTILITIES PACKAGE
=================

Helpers used by the services (no HTTP, no business logic):

  time_info - get_timestamp() / get_uptime_seconds(): values for /ping and /health.
  fallback  - with_fallback(fn, fallback): calls fn(); on failure calls fallback exactly once.
"""
