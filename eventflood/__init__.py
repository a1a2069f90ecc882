"""
eventflood - rate-limited HTTP event load generator.

Synthesizes FCM registration events and POSTs them one per request to an
ingestion endpoint under a token-bucket rate limit and a batch
concurrency ceiling.
"""

__version__ = "1.0.0"
