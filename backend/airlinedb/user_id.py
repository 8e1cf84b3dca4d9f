import secrets
import string

_ALPHABET = string.ascii_uppercase + string.digits


def _random_block(length: int = 8) -> str:
    """
    Return a random string of uppercase letters and digits.
    """
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_id(prefix: str = "ID") -> str:
    """
    Generate a short ID like 'ACC-1F2A9C3D' or 'ID-8K2L0P9Q'.

    IMPORTANT:
    - This function is used by SQLAlchemy as a column default.
    - SQLAlchemy will call it with **zero** positional arguments,
      so the function must work when called as `generate_id()`.
    """
    block = _random_block(8)
    if prefix:
        return f"{prefix}-{block}"
    return block


def generate_account_id() -> str:
    return generate_id("ACC")


def generate_otp_id() -> str:
    return generate_id("OTP")


def generate_event_id() -> str:
    return generate_id("EVT")
