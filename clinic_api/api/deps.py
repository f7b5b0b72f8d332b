from typing import Optional

from fastapi import Depends, Header, Request

from clinic_api.core.errors import Unauthorized
from clinic_api.models.booking import AdminToken
from clinic_api.services.auth_service import CredentialVerifier
from clinic_api.services.booking_service import BookingService
from clinic_api.services.db_service import ConnectionManager


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def get_credential_verifier(request: Request) -> CredentialVerifier:
    return request.app.state.credential_verifier


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


async def require_admin(
    authorization: Optional[str] = Header(None),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
) -> AdminToken:
    """
    Admin gate: expects `Authorization: Bearer <token>` carrying a valid admin token.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized()

    # tolerate stray whitespace/quotes from copy-pasted tokens
    token = authorization[len("Bearer "):].strip().strip('"').strip("'")
    return verifier.verify(token)
