"""Two-step authentication codes (RFC 6238, SHA1, 6 digits, 30 s) via pyotp."""
import time

import pyotp

_DIGITS = 6
_PERIOD_S = 30


def generate_code(secret: str, at: float | None = None) -> str:
    """Return the code for the 30 s window containing `at` (default: now)."""
    if not secret:
        raise ValueError("TOTP secret must not be empty")
    totp = pyotp.TOTP(secret, digits=_DIGITS, interval=_PERIOD_S)
    return totp.at(time.time() if at is None else at)
