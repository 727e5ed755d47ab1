"""Business logic for access control.

- Rate limiting with injected counter stores
- Client identification and ownership checks
- Principal registration and login
"""
