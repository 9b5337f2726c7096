from __future__ import annotations

import re

from ..core.exceptions import ConfirmationRequiredError, ValidationError

_IPV4 = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_confirmation(confirm: bool, action: str) -> None:
    if confirm is not True:
        raise ConfirmationRequiredError(f"Confirmation is required to {action}")


def is_valid_ipv4(value: str) -> bool:
    return bool(value) and _IPV4.match(value) is not None


def is_valid_port(value: int) -> bool:
    return 1 <= int(value) <= 65535
