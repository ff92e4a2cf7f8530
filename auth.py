import hmac
import logging

import jwt
from flask import g, jsonify, request

logger = logging.getLogger(__name__)

DEFAULT_TOKEN = "token2019"
UNAUTHORIZED_MESSAGE = "you don't have authorization!!"


class AuthConfigError(RuntimeError):
    """Raised when authentication configuration is invalid."""


class TokenVerifier:
    """Decides whether an Authorization header value grants access."""

    def verify(self, token: str) -> bool:
        raise NotImplementedError


class StaticTokenVerifier(TokenVerifier):
    """Accepts exactly one shared-secret header value."""

    def __init__(self, secret: str = DEFAULT_TOKEN):
        if not secret:
            raise AuthConfigError("AUTH_TOKEN must not be empty")
        self._secret = secret

    def verify(self, token: str) -> bool:
        if not token:
            return False
        return hmac.compare_digest(token.encode(), self._secret.encode())


class JWTVerifier(TokenVerifier):
    """Accepts `Bearer <jwt>` headers signed with a shared HS256 key."""

    def __init__(self, secret_key: str):
        if not secret_key:
            raise AuthConfigError("JWT_SECRET_KEY environment variable is not set")
        self._secret_key = secret_key

    def decode_token(self, token: str):
        """Decode and validate a JWT token."""
        return jwt.decode(token, self._secret_key, algorithms=["HS256"])

    def verify(self, token: str) -> bool:
        if not token or not token.startswith("Bearer "):
            return False
        try:
            self.decode_token(token.split(" ", 1)[1])
        except jwt.ExpiredSignatureError:
            logger.info("Rejected expired token")
            return False
        except jwt.InvalidTokenError:
            return False
        return True


def build_verifier(config) -> TokenVerifier:
    """Pick a verifier from AUTH_MODE in the app config."""
    mode = (config.get("AUTH_MODE") or "static").lower()
    if mode == "static":
        token = config.get("AUTH_TOKEN")
        return StaticTokenVerifier(DEFAULT_TOKEN if token is None else token)
    if mode == "jwt":
        return JWTVerifier(config.get("JWT_SECRET_KEY"))
    raise AuthConfigError(f"Unknown AUTH_MODE: {mode}")


def install_auth_gate(blueprint, verifier: TokenVerifier):
    """Guard every route of the blueprint with the verifier."""

    @blueprint.before_request
    def require_auth():
        # CORS preflights never carry credentials
        if request.method == "OPTIONS":
            return None
        logger.debug("start auth gate %s %s", request.method, request.path)
        token = request.headers.get("Authorization", "")
        if not verifier.verify(token):
            logger.warning("Unauthorized %s %s", request.method, request.path)
            return jsonify({"error": UNAUTHORIZED_MESSAGE}), 401
        g.auth_passed = True
        return None

    @blueprint.after_request
    def end_auth_gate(response):
        if not g.get("auth_passed"):
            return response
        logger.debug("end auth gate %s %s -> %s", request.method, request.path, response.status_code)
        return response

    return require_auth
