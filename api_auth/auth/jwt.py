"""
JWT token handling for authentication.

This module provides functionality for:
- Issuing signed session tokens carrying the user's name
- Validating tokens (signature and expiry)
- Refreshing tokens within the maximum refresh age
"""
import time
from typing import Any, Callable, Dict, Optional, Union

import jwt
from jwt.exceptions import ExpiredSignatureError, PyJWTError
from pydantic import BaseModel, ValidationError

from api_auth.auth.errors import Unauthorized


class TokenClaims(BaseModel):
    """Token payload model."""
    name: str
    iat: float
    exp: float


class IssuedToken(BaseModel):
    """A freshly signed token and the claims it carries."""
    token: str
    claims: TokenClaims
    max_age: int  # Cookie lifetime in seconds


class TokenSigner:
    """
    Signs, verifies and rotates session tokens with a shared secret.

    Issue times have millisecond resolution and only move forward: a
    refreshed token always gets a later ``iat`` than the token it
    replaces, so the two encoded strings never match.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expires_in: int = 24 * 60 * 60,
        max_refresh_age: int = 15 * 24 * 60 * 60,
        leeway: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_in = expires_in
        self.max_refresh_age = max_refresh_age
        self.leeway = leeway
        self._clock = clock

    def encode(self, payload: Dict[str, Any]) -> str:
        """Sign an arbitrary claim set."""
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def issue(self, name: str, previous_iat: Optional[float] = None) -> IssuedToken:
        """
        Create a token for ``name`` valid for ``expires_in`` seconds.

        Args:
            name: Display name embedded in the token
            previous_iat: Issue time of the token being replaced, if any

        Returns:
            IssuedToken with the encoded string and its claims
        """
        iat = round(self._clock(), 3)
        if previous_iat is not None and iat <= previous_iat:
            iat = round(previous_iat + 0.001, 3)

        claims = TokenClaims(name=name, iat=iat, exp=iat + self.expires_in)
        return IssuedToken(
            token=self.encode(claims.model_dump()),
            claims=claims,
            max_age=self.expires_in,
        )

    def decode(self, token: str, verify_exp: bool = True) -> Union[TokenClaims, Unauthorized]:
        """
        Verify a token's signature and return its claims.

        Args:
            token: Encoded JWT string
            verify_exp: Reject tokens whose ``exp`` has passed

        Returns:
            TokenClaims if valid, Unauthorized otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                leeway=self.leeway,
                options={"verify_exp": verify_exp, "require": ["name", "iat", "exp"]},
            )
            return TokenClaims(**payload)
        except ExpiredSignatureError:
            return Unauthorized("Token has expired")
        except PyJWTError:
            return Unauthorized("Invalid token")
        except (ValidationError, TypeError):
            return Unauthorized("Invalid token claims")

    def refresh(self, token: str) -> Union[IssuedToken, Unauthorized]:
        """
        Re-issue a token with a fresh expiry.

        An expired token may still be refreshed as long as it was issued
        less than ``max_refresh_age`` seconds ago.

        Args:
            token: Token currently held by the client

        Returns:
            New IssuedToken, or Unauthorized if the token is invalid or stale
        """
        claims = self.decode(token, verify_exp=False)
        if isinstance(claims, Unauthorized):
            return claims

        if self._clock() - claims.iat > self.max_refresh_age:
            return Unauthorized("Token is too old to be refreshed")

        return self.issue(claims.name, previous_iat=claims.iat)
