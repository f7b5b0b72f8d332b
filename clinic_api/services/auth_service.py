import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt

from clinic_api.core.config import Settings
from clinic_api.core.errors import InvalidCredentials, InvalidToken, ValidationError
from clinic_api.core.logger import logger
from clinic_api.models.booking import AdminToken

JWT_ALG = "HS256"
ADMIN_ROLE = "admin"
TOKEN_LIFETIME_SECONDS = 8 * 3600


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class CredentialVerifier:
    """
    Checks the single configured admin login and issues/validates HS256 tokens.
    Holds no state besides the settings it was built with.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def login(self, identity: Optional[str], secret: Optional[str]) -> Tuple[str, int]:
        if not identity or not secret:
            raise ValidationError("Missing credentials")

        # Evaluate both so a wrong identity takes as long as a wrong secret
        identity_ok = _same(identity, self.settings.ADMIN_EMAIL_LOGIN)
        secret_ok = _same(secret, self.settings.ADMIN_PASSWORD)
        if not (identity_ok and secret_ok):
            logger.warning("🔒 Rejected admin login attempt")
            raise InvalidCredentials()

        logger.info(f"🔑 Admin {identity} logged in")
        return self.create_token(identity), TOKEN_LIFETIME_SECONDS

    def create_token(self, subject: str, lifetime: timedelta = timedelta(seconds=TOKEN_LIFETIME_SECONDS)) -> str:
        now = datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": subject,
            "email": subject,
            "role": ADMIN_ROLE,
            "iat": int(now.timestamp()),
            "exp": int((now + lifetime).timestamp()),
        }
        return jwt.encode(payload, self.settings.JWT_SECRET, algorithm=JWT_ALG)

    def verify(self, token: Optional[str]) -> AdminToken:
        if not token or not isinstance(token, str):
            raise InvalidToken()

        try:
            payload = jwt.decode(token, self.settings.JWT_SECRET, algorithms=[JWT_ALG])
        except JWTError as e:
            logger.info(f"🔒 Token rejected: {e}")
            raise InvalidToken() from e

        if payload.get("role") != ADMIN_ROLE or not payload.get("sub"):
            raise InvalidToken()

        try:
            return AdminToken(
                subject=payload["sub"],
                role=payload["role"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise InvalidToken() from e
