"""
Shared-secret admin check.

Uploads send the password as a form field; other admin routes send it in
the `X-Admin-Password` header.
"""
import secrets
from typing import Optional

from fastapi import Header

from kpiboard.core.config import settings
from kpiboard.core.errors import InvalidPasswordError

ADMIN_HEADER = "X-Admin-Password"


def check_password(candidate: Optional[str]) -> None:
    if not candidate or not secrets.compare_digest(
        candidate.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8")
    ):
        raise InvalidPasswordError()


def require_admin(x_admin_password: Optional[str] = Header(default=None, alias=ADMIN_HEADER)) -> None:
    check_password(x_admin_password)
