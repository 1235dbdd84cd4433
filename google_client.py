from __future__ import annotations
import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from google.auth import exceptions as google_exceptions
from google.auth import transport
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token
load_dotenv()

logger = logging.getLogger(__name__)

class InvalidTokenError(Exception):
    """The ID token was rejected by Google or issued for another client."""

class GoogleTokenVerifier:
    """
    Google Sign-In ID token verifier backed by google-auth.
    Signature, expiry, issuer and audience are checked by verify_oauth2_token.
    Docs: https://developers.google.com/identity/sign-in/web/backend-auth
    """
    def __init__(
        self,
        client_id: Optional[str] = None,
        request: Optional[transport.Request] = None,
        clock_skew: int = 10,
    ):
        self.client_id = client_id or os.getenv("GOOGLE_CLIENT_ID")
        # certs are fetched over requests
        self.request = request or google_requests.Request()
        self.clock_skew = clock_skew

    def verify(self, id_token: str) -> Dict[str, Any]:
        """Return the token payload (sub, email, name, picture, ...) or raise InvalidTokenError."""
        if not self.client_id:
            raise RuntimeError("Missing GOOGLE_CLIENT_ID")

        try:
            payload = google_id_token.verify_oauth2_token(
                id_token, self.request, self.client_id,
                clock_skew_in_seconds=self.clock_skew,
            )
        except (ValueError, google_exceptions.GoogleAuthError) as e:
            # ValueError also covers a certs response that is not JSON
            logger.warning("Google rejected token: %s", e)
            raise InvalidTokenError(str(e)) from e

        if not payload.get("sub") or not payload.get("email"):
            raise InvalidTokenError("Token payload lacks sub/email")
        return payload
