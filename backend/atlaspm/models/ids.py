"""
Identifier generators for rows whose keys are minted by the application.

    - users get a short 8-character lowercase id (`new_user_id`)
    - timesheets get a 26-character ULID (`new_ulid`), sortable by creation
      time and increasing within the same millisecond
"""

import secrets
import string

from ulid import ULID

USER_ID_LENGTH = 8
_USER_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_ulid() -> str:
    return str(ULID())


def is_ulid(value: str) -> bool:
    try:
        ULID.from_str(value)
    except ValueError:
        return False
    return True


def new_user_id() -> str:
    # first character is always a letter, like cuid slugs
    head = secrets.choice(string.ascii_lowercase)
    tail = "".join(secrets.choice(_USER_ID_ALPHABET) for _ in range(USER_ID_LENGTH - 1))
    return head + tail
