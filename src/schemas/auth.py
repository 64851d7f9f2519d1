"""Authentication schemas for JWT tokens and the request principal."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated principal extracted from a verified JWT.

    Credentials and sessions are issued elsewhere; this service only needs
    the principal's id and role.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'user', 'admin')")

    def has_role(self, role: str) -> bool:
        """Check the principal's role claim."""
        return self.role == role


class TokenPayload(BaseModel):
    """Claims carried by an access token."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext."""
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
        )


class AuthenticatedResponse(BaseModel):
    """Response of the authenticated health check."""

    authenticated: bool = Field(description="Whether the request carried a valid token")
    user_id: str = Field(description="Authenticated user's ID")
    email: str | None = Field(default=None, description="Authenticated user's email")
    role: str | None = Field(default=None, description="Authenticated user's role")
