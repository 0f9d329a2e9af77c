from typing import Optional

from pydantic import BaseModel, Field


class LoginResponse(BaseModel):
    authorization_url: str = Field(description="Identity provider consent page to redirect to")
    state: str = Field(description="Signed OAuth state, valid for one callback")


class CallbackResponse(BaseModel):
    """
    Outcome of the OAuth callback.

    A denied admin still receives a session token: the identity is valid, it
    simply carries no admin rights.
    """
    success: bool
    message: str
    redirect_to: str
    email: str
    is_admin: bool
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")


class SessionUser(BaseModel):
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    is_admin: bool
