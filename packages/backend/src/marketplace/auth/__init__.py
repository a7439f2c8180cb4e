"""Authentication and authorization.

Learn: Users sign in with email/password and receive two JWTs:
1. Access token → short-lived, sent as "Authorization: Bearer <token>"
2. Refresh token → long-lived, only good for minting a new pair

The two kinds are signed with different secrets. The request gate in
dependencies.py turns a verified access token into a CurrentIdentity.
"""
