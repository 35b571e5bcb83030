from __future__ import annotations

import base64
import binascii
import secrets
from dataclasses import dataclass
from typing import Callable, Optional


class Tier:
    PUBLIC = "public"
    ADMIN = "admin"


@dataclass(frozen=True)
class CallerContext:
    tier: str = Tier.PUBLIC
    username: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.tier == Tier.ADMIN


PUBLIC_CALLER = CallerContext()

Permission = Callable[[CallerContext], bool]


def allow_public(caller: CallerContext) -> bool:
    return True


def require_admin(caller: CallerContext) -> bool:
    return caller.is_admin


class InvalidCredentials(ValueError):
    pass


def _normalize_password(value: str) -> str:
    # Application passwords are displayed in space-separated groups.
    return "".join(str(value or "").split())


def basic_auth_header(username: Optional[str], app_password: Optional[str]) -> dict:
    """Authorization header for the pair, or {} unless both parts are set."""
    if not username or not app_password:
        return {}
    token = base64.b64encode(f"{username}:{app_password}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def caller_from_authorization(
    header: Optional[str],
    *,
    username: Optional[str],
    app_password: Optional[str],
) -> CallerContext:
    """
    Resolve the caller tier from an Authorization header.

    No header: public caller.
    Valid Basic credentials matching the configured admin pair: admin caller.
    Anything else raises InvalidCredentials.
    """
    raw = str(header or "").strip()
    if not raw:
        return PUBLIC_CALLER

    scheme, _, token = raw.partition(" ")
    if scheme.lower() != "basic" or not token.strip():
        raise InvalidCredentials("Unsupported authorization scheme.")
    try:
        decoded = base64.b64decode(token.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise InvalidCredentials("Malformed authorization header.") from e

    user, sep, password = decoded.partition(":")
    if not sep or not username or not app_password:
        raise InvalidCredentials("Unknown username or incorrect password.")

    user_ok = secrets.compare_digest(user.encode("utf-8"), username.encode("utf-8"))
    pass_ok = secrets.compare_digest(
        _normalize_password(password).encode("utf-8"),
        _normalize_password(app_password).encode("utf-8"),
    )
    if not (user_ok and pass_ok):
        raise InvalidCredentials("Unknown username or incorrect password.")
    return CallerContext(tier=Tier.ADMIN, username=user)
