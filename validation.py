# backend/validation.py

import re

from pydantic import AnyUrl, TypeAdapter, ValidationError

# Patterns are applied with fullmatch, and digit classes are ASCII only.

# Swiss: +41 then 9 digits, first one 1-9
SWISS_PHONE_REGEX = re.compile(r"\+41[1-9]\d{8}", re.ASCII)
# Kosovo: +383 then 8 or 9 digits, first one 4-9
KOSOVO_PHONE_REGEX = re.compile(r"\+383[4-9]\d{7,8}", re.ASCII)

# Display format accepted by /users/check, single spaces allowed between groups
CHECK_PHONE_REGEX = re.compile(
    r"\+41\s?[0-9]{2}\s?[0-9]{3}\s?[0-9]{2}\s?[0-9]{2}"
    r"|\+383\s?[0-9]{2}\s?[0-9]{3}\s?[0-9]{3}"
)

EMAIL_REGEX = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

MESSAGE_ROLES = ("user", "assistant")

# Ids are stored in signed 64-bit integer columns
MAX_ID = 2**63 - 1

_URL_ADAPTER = TypeAdapter(AnyUrl)

PHONE_FORMAT_MESSAGE = (
    "Invalid phone number format. "
    "Please use Swiss (+41XXXXXXXXX) or Kosovo (+383XXXXXXXX) format"
)
CHECK_PHONE_FORMAT_MESSAGE = (
    "Invalid phone number format. Please use Swiss (+41) or Kosovo (+383) format"
)


def is_valid_phone(phone) -> bool:
    if not isinstance(phone, str):
        return False
    return bool(SWISS_PHONE_REGEX.fullmatch(phone) or KOSOVO_PHONE_REGEX.fullmatch(phone))


def is_valid_check_phone(phone) -> bool:
    return isinstance(phone, str) and CHECK_PHONE_REGEX.fullmatch(phone) is not None


def is_valid_email(email) -> bool:
    return isinstance(email, str) and EMAIL_REGEX.fullmatch(email) is not None


def is_valid_name(name) -> bool:
    return isinstance(name, str) and bool(name.strip())


def is_valid_role(role) -> bool:
    return role in MESSAGE_ROLES


def is_valid_content(content) -> bool:
    return isinstance(content, str) and len(content) > 0


def is_valid_url(url) -> bool:
    if not isinstance(url, str):
        return False
    try:
        parsed = _URL_ADAPTER.validate_python(url)
    except ValidationError:
        return False
    return bool(parsed.host)
