from fastapi import APIRouter, Depends, Response, status

from clinic_api.api.deps import get_credential_verifier
from clinic_api.core.errors import MethodNotAllowed
from clinic_api.models.booking import LoginRequest, TokenResponse
from clinic_api.services.auth_service import CredentialVerifier

router = APIRouter()

LOGIN_ALLOW = "POST, OPTIONS"

@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, verifier: CredentialVerifier = Depends(get_credential_verifier)):
    token, expires_in = verifier.login(req.email, req.password)
    return TokenResponse(token=token, expiresIn=expires_in)

@router.options("/login", status_code=status.HTTP_204_NO_CONTENT)
async def login_options():
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"Allow": LOGIN_ALLOW})

@router.api_route("/login", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def login_method_not_allowed():
    raise MethodNotAllowed(LOGIN_ALLOW)
