from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from notable_backend.api.deps import get_identity_bridge, oauth2_scheme
from notable_backend.api.schemas import (
    CheckAuthRequest,
    CheckAuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    UserEnvelope,
)
from notable_backend.auth.identity_bridge import IdentityBridge
from notable_backend.errors import Unauthorized

router = APIRouter(prefix="/users", tags=["Authentication"])


# PUBLIC_INTERFACE
@router.post("/register", response_model=RegisterResponse, summary="Register a new user")
def register(payload: RegisterRequest, bridge: IdentityBridge = Depends(get_identity_bridge)):
    """
    Create the provider credential and the local user.
    Returns both the local id and the provider uid.
    """
    registration = bridge.register(payload.email, payload.username, payload.password, payload.phone_number)
    user = registration.user
    return {
        "message": "User registered successfully",
        "user": RegisteredUser(
            uid=user.id,
            provider_uid=registration.provider_uid,
            email=user.email,
            username=user.username,
            phone_number=user.phone_number,
        ),
    }

# PUBLIC_INTERFACE
@router.post("/login", response_model=LoginResponse, summary="Login and get a session token")
def login(payload: LoginRequest, bridge: IdentityBridge = Depends(get_identity_bridge)):
    """
    Verify the password with the identity provider, then issue a session
    token bound to the local user id.
    """
    result = bridge.login(payload.email, payload.password)
    return {"message": "Login successful", "token": result.token, "id": result.user_id}

# PUBLIC_INTERFACE
@router.post("/forgot-password", response_model=MessageResponse, summary="Send a password reset link")
def forgot_password(payload: ForgotPasswordRequest, bridge: IdentityBridge = Depends(get_identity_bridge)):
    bridge.forgot_password(payload.email)
    return {"message": "Password reset email sent"}

# PUBLIC_INTERFACE
@router.post(
    "/check-auth",
    response_model=CheckAuthResponse,
    response_model_exclude_none=True,
    summary="Check a session token",
)
def check_auth(payload: CheckAuthRequest, bridge: IdentityBridge = Depends(get_identity_bridge)):
    """
    Reports whether the token is a valid, unexpired session token.
    An invalid token answers 400 with loggedIn=false.
    """
    try:
        claims = bridge.check(payload.token or "")
    except Unauthorized as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"loggedIn": False, "error": exc.message},
        )
    return {"loggedIn": True, "user": claims.as_payload()}

# PUBLIC_INTERFACE
@router.get("/user", response_model=UserEnvelope, summary="Get the user behind a provider assertion")
def get_user(
    assertion: Optional[str] = Depends(oauth2_scheme),
    bridge: IdentityBridge = Depends(get_identity_bridge),
):
    """
    Takes the identity provider's token (not a session token) as the bearer credential.
    """
    if not assertion:
        raise Unauthorized("Unauthorized")
    return {"user": bridge.resolve_provider_user(assertion)}

# PUBLIC_INTERFACE
@router.post("/logout", response_model=MessageResponse, summary="Logout")
def logout():
    """Sessions are stateless; the client discards its token."""
    return {"message": "Logout successful"}
