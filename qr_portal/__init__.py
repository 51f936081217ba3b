"""QR Portal - Backend.

User accounts, cookie-based sessions and an admin panel for user moderation,
stored in MongoDB.

Core concepts:
- Users register with an email/password and log in to receive a session cookie.
- Admins are users with `isAdmin` plus a set of named permissions.
- Every admin mutation is rate limited and recorded in an append-only audit log.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
