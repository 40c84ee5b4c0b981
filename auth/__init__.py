"""auth/ -- Credential and session-token lifecycle for VidTube Identity.

Components, leaves first:
  store.py     -- UserStore, persistence of identity records
  passwords.py -- PasswordHasher, bcrypt hashing and verification
  tokens.py    -- TokenIssuer, access/refresh JWT signing and verification
  service.py   -- IdentityService, register/login/refresh/logout and account edits

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/. api/ imports from auth/, not the other way around.
"""
