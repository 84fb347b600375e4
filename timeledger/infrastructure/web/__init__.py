"""
HTTP layer: routers, middleware and response helpers.
"""
