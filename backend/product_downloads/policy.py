"""Per-route choice between swallowing and propagating backend failures."""

import enum


class ErrorPolicy(str, enum.Enum):
    SWALLOW = "swallow"
    PROPAGATE = "propagate"


def lookup_error_policy() -> ErrorPolicy:
    """Product lookups answer {"empty": true} instead of failing."""
    return ErrorPolicy.SWALLOW


def upload_error_policy() -> ErrorPolicy:
    """Upload cleanup and storage failures are logged and the request carries on."""
    return ErrorPolicy.SWALLOW
