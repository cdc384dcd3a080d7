"""Authentication - API keys and principal lookup.

Keys are shown to the user once at registration. Only their hash is
stored, and it doubles as the user id.
"""

import hashlib
import logging
import secrets

from ..core.models import Principal, Role, User, utcnow
from .firestore_client import FitTrackFirestoreClient


logger = logging.getLogger(__name__)

API_KEY_PREFIX = "ftk_"

# Prefix plus the urlsafe encoding of 32 random bytes is 47 characters
MIN_API_KEY_LENGTH = 40


def generate_api_key() -> str:
    """New random API key of the form ftk_<token>."""
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


def hash_api_key(api_key: str) -> str:
    """User id for an API key: SHA-256 hex digest cut to a 32-char document id."""
    return hashlib.sha256(api_key.encode()).hexdigest()[:32]


def bearer_token(header: str) -> str | None:
    """Extract the token from an Authorization header value."""
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


class AuthClient:
    """Registers users and resolves API keys to principals via Firestore."""

    def __init__(self, db: FitTrackFirestoreClient) -> None:
        self._db = db

    def register_user(self, email: str, role: Role = Role.USER) -> tuple[str, str]:
        """Register a new user and generate their API key.

        Args:
            email: User's email address
            role: Role stored on the user record

        Returns:
            Tuple of (api_key, user_id) - api_key is only returned once!
        """
        api_key = generate_api_key()
        user_id = hash_api_key(api_key)

        user = User(email=email, api_key_hash=user_id, role=role, created_at=utcnow())
        self._db.user_ref(user_id).set(user.model_dump(mode="json"))

        logger.info("Registered user %s (%s)", user_id[:8], role.value)
        return api_key, user_id

    def get_user(self, user_id: str) -> User | None:
        doc = self._db.user_ref(user_id).get()
        if doc.exists:
            return User(**doc.to_dict())
        return None

    def authenticate(self, api_key: str | None) -> Principal | None:
        """Resolve an API key to the calling principal.

        Keys without the ftk_ prefix or shorter than a generated key are
        rejected without a Firestore lookup.

        Returns:
            Principal if the key belongs to a registered user, None otherwise
        """
        if not api_key or not api_key.startswith(API_KEY_PREFIX) or len(api_key) < MIN_API_KEY_LENGTH:
            logger.warning("Malformed API key rejected")
            return None

        user_id = hash_api_key(api_key)
        if self.get_user(user_id) is None:
            logger.warning("API key not found in database")
            return None

        logger.debug("API key validated for user: %s", user_id[:8])
        return Principal(id=user_id)
