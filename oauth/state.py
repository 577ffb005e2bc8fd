"""Anti-CSRF state tokens for the authorization redirect."""

import secrets
import string

STATE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
STATE_LENGTH = 16


def generate_random_string(length: int = STATE_LENGTH) -> str:
    """Generate a random string containing numbers and letters."""
    return "".join(secrets.choice(STATE_ALPHABET) for _ in range(length))
