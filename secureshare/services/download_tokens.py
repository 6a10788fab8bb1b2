# secureshare/services/download_tokens.py
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from itsdangerous import BadSignature, URLSafeTimedSerializer

TOKEN_SALT = "secureshare-download"


class DownloadTokens:
    """
    Tokens firmados de corta vida emitidos al acceder a un slot.

    Sustituyen al password en la query string de las descargas.
    """

    def __init__(self, secret_key: str, ttl_seconds: int = 600) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)
        self.ttl_seconds = ttl_seconds

    def issue(self, slot_id: str) -> Tuple[str, datetime]:
        token = self._serializer.dumps({"slot": slot_id})
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)
        return token, expires_at

    def is_valid(self, token: Optional[str], slot_id: str) -> bool:
        if not token:
            return False
        try:
            payload = self._serializer.loads(token, max_age=self.ttl_seconds)
        except BadSignature:
            return False
        return isinstance(payload, dict) and payload.get("slot") == slot_id
