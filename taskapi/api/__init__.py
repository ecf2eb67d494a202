"""
HTTP layer: app factory, routers, envelopes.

Import the factory from taskapi.api.app.
"""
