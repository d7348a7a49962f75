"""
Tests for Users, Passwords and Tokens
"""

import json
from datetime import datetime, timezone

import jwt
import pytest

from action_bank.exceptions import AuthenticationError, InvalidDataError
from action_bank.passwords import (
    hash_password, verify_password, validate_password, generate_reset_token
)
from action_bank.user_token import UserToken, encode_token, decode_token
from action_bank.user_types import UserTypeMap
from action_bank.users import NewUser, User


FAST_N = 1024
SECRET = "test-secret"


@pytest.fixture
def user_type_map():
    return UserTypeMap()


@pytest.fixture
def user(user_type_map):
    draft = NewUser.from_json({
        "username": "alice",
        "email": "alice@example.com",
        "password": "hashed",
        "firstName": "Alice",
        "userType": "editor",
        "userMeta": {"theme": "dark"},
    }, user_type_map)
    return User.from_new(draft, "user-1")


class TestNewUser:
    """Test building users from argument bags"""

    def test_defaults(self, user_type_map):
        draft = NewUser.from_json({
            "username": "bob",
            "email": "bob@example.com",
            "password": "hashed",
        }, user_type_map)

        assert draft.user_type.name == "basic"
        assert draft.enabled is True
        assert draft.first_name == ""
        assert draft.user_meta == {}

    def test_required_fields(self, user_type_map):
        with pytest.raises(InvalidDataError):
            NewUser.from_json({"username": "bob", "email": "bob@example.com"}, user_type_map)

        with pytest.raises(InvalidDataError):
            NewUser.from_json("bob", user_type_map)

    def test_unknown_user_type(self, user_type_map):
        with pytest.raises(InvalidDataError):
            NewUser.from_json({
                "username": "bob",
                "email": "bob@example.com",
                "password": "hashed",
                "userType": "owner",
            }, user_type_map)


class TestUser:
    """Test persisted user behaviour"""

    def test_new_user_has_no_reset_token(self, user):
        assert user.password_reset_token == ""
        assert user.password_reset_date is None
        assert user.date_added == user.date_updated

    def test_merge_edits_whitelists_and_type_checks(self, user, user_type_map):
        edited = user.merge_edits({
            "firstName": "Alicia",
            "lastName": 42,
            "enabled": "no",
            "id": "someone-else",
        }, user_type_map)

        assert edited.first_name == "Alicia"
        assert edited.last_name == user.last_name
        assert edited.enabled is True
        assert edited.id == "user-1"
        assert user.first_name == "Alice"

    def test_merge_edits_user_type(self, user, user_type_map):
        edited = user.merge_edits({"userType": "admin"}, user_type_map)
        assert edited.user_type.name == "admin"

        with pytest.raises(InvalidDataError):
            user.merge_edits({"userType": "owner"}, user_type_map)

    def test_public_view_hides_secrets(self, user):
        public = user.to_public()

        assert "passwordHash" not in public
        assert "passwordResetToken" not in public
        assert public["userType"] == "editor"
        assert json.loads(public["userMeta"]) == {"theme": "dark"}

    def test_round_trip(self, user, user_type_map):
        assert User.from_json(user.to_json(), user_type_map) == user

    def test_reset_date_round_trip(self, user, user_type_map):
        raw = user.to_json()
        raw["passwordResetToken"] = "abc"
        raw["passwordResetDate"] = datetime(2024, 1, 1, tzinfo=timezone.utc).isoformat()

        parsed = User.from_json(raw, user_type_map)
        assert parsed.password_reset_date == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("field,value", [
        ("username", None),
        ("userMeta", "{}"),
        ("enabled", 1),
        ("userType", "owner"),
    ])
    def test_malformed_record(self, user, user_type_map, field, value):
        raw = user.to_json()
        raw[field] = value
        with pytest.raises(InvalidDataError):
            User.from_json(raw, user_type_map)


class TestPasswords:
    """Test password hashing and policy"""

    def test_hash_and_verify(self):
        hashed = hash_password("correct horse", FAST_N)

        assert hashed.startswith("scrypt$1024$")
        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong horse", hashed) is False

    def test_salted(self):
        assert hash_password("same", FAST_N) != hash_password("same", FAST_N)

    def test_verify_rejects_garbage(self):
        assert verify_password("pw", "not-a-hash") is False
        assert verify_password("pw", "scrypt$abc$salt$digest") is False
        assert verify_password(None, "scrypt$1024$salt$digest") is False

    def test_policy(self):
        assert validate_password("longenough", 8) == (True, [])

        is_valid, violations = validate_password("short", 8)
        assert is_valid is False
        assert violations == ["Password must be 8 characters or longer"]

        assert validate_password(12345678, 8)[0] is False

    def test_reset_tokens_unique(self):
        assert generate_reset_token() != generate_reset_token()


class TestUserToken:
    """Test JWT encoding of caller identity"""

    def test_round_trip(self):
        claims = UserToken(username="alice", user_id="user-1", user_type="editor")
        encoded = encode_token(claims, SECRET)

        assert decode_token(encoded, SECRET) == claims

    def test_wrong_secret(self):
        encoded = encode_token(UserToken("alice", "user-1", "editor"), SECRET)
        with pytest.raises(AuthenticationError):
            decode_token(encoded, "other-secret")

    def test_expired(self):
        encoded = encode_token(UserToken("alice", "user-1", "editor"), SECRET,
                               expiry_hours=-1)
        with pytest.raises(AuthenticationError):
            decode_token(encoded, SECRET)

    def test_missing_claims(self):
        encoded = jwt.encode({"username": "alice"}, SECRET, algorithm="HS256")
        with pytest.raises(AuthenticationError):
            decode_token(encoded, SECRET)
