from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from itsdangerous import BadSignature, URLSafeTimedSerializer

from config import get_settings
from errors import Unauthorized

SESSION_COOKIE = "session"


@dataclass(frozen=True)
class Caller:
    id: str
    email: Optional[str] = None


def _serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(settings.session_secret, salt="session")


def issue_session_token(user_id: str, email: Optional[str] = None) -> str:
    """Mint a token the way the identity provider hands them out."""
    return _serializer().dumps({"sub": user_id, "email": email})


def caller_from_token(token: Optional[str]) -> Optional[Caller]:
    if not token:
        return None
    settings = get_settings()
    try:
        data = _serializer().loads(token, max_age=settings.session_max_age_secs)
    except BadSignature:
        # also covers SignatureExpired
        return None
    if not isinstance(data, dict):
        return None
    user_id = data.get("sub")
    if not user_id:
        return None
    return Caller(id=str(user_id), email=data.get("email"))


def resolve_caller(request: Request) -> Optional[Caller]:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        header = request.headers.get("Authorization", "")
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer":
            token = value.strip()
    return caller_from_token(token)


def require_caller(caller: Optional[Caller]) -> Caller:
    if caller is None:
        raise Unauthorized()
    return caller
