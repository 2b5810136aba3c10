"""User roles known to the booking services."""

ROLE_SUPERUSER = "superuser"