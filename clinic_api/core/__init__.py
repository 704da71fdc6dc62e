"""
Shared infrastructure: security primitives, session cache, media store,
middleware, response envelopes and pagination.
"""
