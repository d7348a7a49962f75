"""
User Token

The claim set carried in a signed JWT: who the caller is and which role they
had when the token was issued.
"""

from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Any, Dict

import jwt

from .exceptions import AuthenticationError, InvalidDataError


@dataclass(frozen=True)
class UserToken:
    """Decoded caller identity"""
    username: str
    user_id: str
    user_type: str

    @classmethod
    def from_json(cls, raw: Any) -> 'UserToken':
        if (not isinstance(raw, dict)
                or not isinstance(raw.get('username'), str)
                or not isinstance(raw.get('userId'), str)
                or not isinstance(raw.get('userType'), str)):
            raise InvalidDataError("Invalid Data")

        return cls(
            username=raw['username'],
            user_id=raw['userId'],
            user_type=raw['userType'],
        )

    def to_claims(self) -> Dict[str, Any]:
        return {
            'username': self.username,
            'userId': self.user_id,
            'userType': self.user_type,
        }


def encode_token(token: UserToken, secret: str, algorithm: str = "HS256",
                 expiry_hours: int = 12) -> str:
    """Sign a UserToken into a JWT"""
    now = datetime.now(timezone.utc)
    payload = token.to_claims()
    payload.update({
        'sub': token.user_id,
        'iat': now,
        'exp': now + timedelta(hours=expiry_hours),
    })
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(encoded: str, secret: str, algorithm: str = "HS256") -> UserToken:
    """Verify a JWT and return its UserToken"""
    try:
        payload = jwt.decode(encoded, secret, algorithms=[algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")

    try:
        return UserToken.from_json(payload)
    except InvalidDataError:
        raise AuthenticationError("Invalid token")
