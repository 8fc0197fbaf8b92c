"""Shared constants for session tests."""

HOST_UID = "host-uid"
GUEST_UID = "guest-uid"
OTHER_UID = "other-uid"
HOST_SECRET = "1234"
GUEST_SECRET = "5678"
