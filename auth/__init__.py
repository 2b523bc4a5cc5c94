"""auth/ -- Credential & Session Service for the donation portal.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/, donations/, or contact/.
api/ and donations/ import from auth/, not the other way around.
"""
