"""Whop user token verification.

Requests made through the Whop experience proxy carry an ``x-whop-user-token``
header holding an ES256 JWT signed by Whop. A token is accepted when its
signature checks out against the app's Whop public key, its issuer is the
experience proxy and its audience is our app id.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

import jwt

from errors import AuthError, WhopConfigurationError

logger = logging.getLogger(__name__)

WHOP_TOKEN_HEADER = "x-whop-user-token"
WHOP_TOKEN_ISSUER = "urn:whopcom:exp-proxy"

EXPERIENCE_PARAM_KEYS = ("experienceId", "experience_id", "experience")
EXPERIENCE_HEADER_KEYS = ("x-whop-experience-id", "x-whop-target-experience-id", "x-whop-experienceid")
COMPANY_PARAM_KEYS = ("companyId", "company_id", "company")
COMPANY_HEADER_KEYS = ("x-whop-company-id", "x-whop-companyid")


@dataclass
class Session:
    user_id: str
    experience_id: Optional[str] = None
    company_id: Optional[str] = None


def get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup that also works on plain dicts."""
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def _first_match(headers, params, param_keys, header_keys) -> Optional[str]:
    for key in param_keys:
        value = (params or {}).get(key)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value:
            return value
    for key in header_keys:
        value = get_header(headers, key)
        if value:
            return value
    return None


def get_experience_id(headers: Mapping[str, str], params: Optional[Mapping] = None) -> Optional[str]:
    """Experience id from the query string, falling back to Whop proxy headers."""
    return _first_match(headers, params, EXPERIENCE_PARAM_KEYS, EXPERIENCE_HEADER_KEYS)


def get_company_id(headers: Mapping[str, str], params: Optional[Mapping] = None) -> Optional[str]:
    """Company id from the query string, falling back to Whop proxy headers."""
    return _first_match(headers, params, COMPANY_PARAM_KEYS, COMPANY_HEADER_KEYS)


class WhopTokenVerifier:
    """Verifies Whop user tokens for one app."""

    def __init__(self, app_id: Optional[str], public_key: Optional[str]):
        if not app_id:
            raise WhopConfigurationError("WHOP_APP_ID is not configured.")
        if not public_key:
            raise WhopConfigurationError("WHOP_PUBLIC_KEY is not configured.")
        self.app_id = app_id
        # PEM keys in env files usually carry escaped newlines
        self.public_key = public_key.replace("\\n", "\n")

    def verify_user_token(self, token: str) -> dict:
        """Return ``{"user_id", "app_id"}`` for a valid token, else raise AuthError."""
        try:
            payload = jwt.decode(
                token,
                self.public_key,
                algorithms=["ES256"],
                audience=self.app_id,
                issuer=WHOP_TOKEN_ISSUER,
            )
        except jwt.PyJWTError as e:
            logger.warning(f"Failed to verify Whop token: {e}")
            raise AuthError("Invalid Whop user token.")

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("Whop token has no subject")
            raise AuthError("Invalid Whop user token.")
        return {"user_id": user_id, "app_id": payload.get("aud")}


class AccessGate:
    """Turns request headers into a :class:`Session`.

    The verifier is built on first use and reused afterwards.
    """

    def __init__(self, verifier_factory: Callable[[], WhopTokenVerifier]):
        self._verifier_factory = verifier_factory
        self._verifier: Optional[WhopTokenVerifier] = None
        self._lock = threading.Lock()

    @property
    def verifier(self) -> WhopTokenVerifier:
        if self._verifier is None:
            with self._lock:
                if self._verifier is None:
                    self._verifier = self._verifier_factory()
        return self._verifier

    def verify(self, headers: Mapping[str, str], params: Optional[Mapping] = None) -> Session:
        token = get_header(headers, WHOP_TOKEN_HEADER)
        logger.debug(f"Whop token present: {'YES' if token else 'NO'}")
        if not token:
            raise AuthError("Missing Whop user token header.")

        validation = self.verifier.verify_user_token(token)
        session = Session(
            user_id=validation["user_id"],
            experience_id=get_experience_id(headers, params),
            company_id=get_company_id(headers, params),
        )
        logger.info(f"Session created for user: {session.user_id}")
        return session

    def optional_session(self, headers: Mapping[str, str], params: Optional[Mapping] = None) -> Optional[Session]:
        """Like :meth:`verify` but returns None instead of raising."""
        try:
            return self.verify(headers, params)
        except WhopConfigurationError as e:
            logger.error(f"Whop configuration error: {e.message}")
            return None
        except AuthError:
            logger.info("No valid session (unauthorized)")
            return None
