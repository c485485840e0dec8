"""Outbound provider integrations.

- SearchTransport: protocol for task-based search providers (see base.py)
- SlidingWindowRateLimiter: shared request budget for provider calls
- search: the throttled SearchClient and the DataForSEO transport
"""
