"""donations/ -- Donation Lifecycle Manager.

Owns the donation request state machine (pending -> approved | rejected) and
the rules for who may create, list, transition, or cancel a request.

Layer rule: donations/ imports from auth/ (Principal, UserStore) and core/.
It does NOT import from api/ or contact/.
"""
