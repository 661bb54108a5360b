"""auth/ -- Authentication package for the SessionGuard host API.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, session/, or client/.
api/ imports from auth/, not the other way around.
"""
