"""auth/ -- Passwordless sign-in and session gating for Inkwell.

Layer rule: auth/ imports only stdlib + third-party libraries (and core/ for
settings types). It does NOT import from api/, web/, or notes/.
api/ and web/ import from auth/, not the other way around.
"""
