"""
Identity verification.

A verifier turns a bearer token into the principal's email. Production uses
Firebase ID tokens; the JWT verifier signs and checks HS256 tokens locally.
"""

import base64
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from errors import InternalFailure, Unauthorized
from settings import Settings

logger = logging.getLogger(__name__)


class JwtIdentityVerifier:
    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 24 * 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes

    def create_access_token(self, email: str, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        return jwt.encode({"email": email, "exp": expire}, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        if not token:
            raise Unauthorized()
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            raise Unauthorized()
        email = payload.get("email")
        if not email:
            raise Unauthorized()
        return email


class FirebaseIdentityVerifier:
    def __init__(self, service_key_b64: str):
        import firebase_admin
        from firebase_admin import credentials

        if not service_key_b64:
            raise ValueError("FB_SERVICE_KEY is required for the firebase auth provider")
        service_account = json.loads(base64.b64decode(service_key_b64).decode("utf-8"))
        try:
            firebase_admin.get_app()
        except ValueError:
            firebase_admin.initialize_app(credentials.Certificate(service_account))
        logger.info("Firebase admin initialized")

    def verify(self, token: str) -> str:
        from firebase_admin import auth

        if not token:
            raise Unauthorized()
        try:
            decoded = auth.verify_id_token(token)
        except auth.CertificateFetchError as exc:
            logger.error("Could not fetch Firebase signing certificates: %s", exc)
            raise InternalFailure("Identity provider unavailable") from exc
        except (ValueError, auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as exc:
            logger.info("Rejected ID token: %s", exc)
            raise Unauthorized()
        email = decoded.get("email")
        if not email:
            raise Unauthorized()
        return email


def build_verifier(settings: Settings):
    if settings.AUTH_PROVIDER == "jwt":
        return JwtIdentityVerifier(
            settings.JWT_SECRET_KEY,
            settings.JWT_ALGORITHM,
            settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        )
    return FirebaseIdentityVerifier(settings.FB_SERVICE_KEY)
