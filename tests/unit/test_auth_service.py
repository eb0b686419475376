"""
Unit tests for caller identity helpers and user lookups
"""
from datetime import timedelta

import jwt
import pytest

from submission_api.services.auth_service import (
    CallerIdentity,
    create_jwt_token,
    extract_bearer_token,
    identity_from_claims,
    is_admin,
    verify_jwt_token,
)

from tests.constants import TEST_JWT_SECRET


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "headers,expected",
        [
            ({}, None),
            ({"authorization": "Bearer abc"}, "abc"),
            ({"authorization": "bearer   abc  "}, "abc"),
            ({"x-authorization": "abc"}, "abc"),
            ({"authorization": "Bearer "}, ""),
            ({"authorization": "Bearer"}, ""),
            ({"authorization": ""}, ""),
        ],
    )
    def test_extract(self, headers, expected):
        assert extract_bearer_token(headers) == expected


class TestTokens:
    def test_round_trip(self):
        token = create_jwt_token({"uid": "u1", "admin": True}, TEST_JWT_SECRET)
        claims = verify_jwt_token(token, TEST_JWT_SECRET)
        assert claims["uid"] == "u1"
        assert claims["admin"] is True
        assert "exp" in claims and "iat" in claims

    def test_expired(self):
        token = create_jwt_token({"uid": "u1"}, TEST_JWT_SECRET, expires_in=timedelta(minutes=-1))
        assert verify_jwt_token(token, TEST_JWT_SECRET) is None

    def test_bad_signature(self):
        token = jwt.encode({"uid": "u1"}, "wrong", algorithm="HS256")
        assert verify_jwt_token(token, TEST_JWT_SECRET) is None

    def test_garbage(self):
        assert verify_jwt_token("not.a.jwt", TEST_JWT_SECRET) is None


class TestIdentity:
    @pytest.mark.parametrize(
        "claims,uid",
        [
            ({"uid": "a"}, "a"),
            ({"sub": "b"}, "b"),
            ({"user_id": "c"}, "c"),
            ({"uid": ""}, None),
            ({"uid": 12}, None),
            ({}, None),
        ],
    )
    def test_identity_from_claims(self, claims, uid):
        identity = identity_from_claims(claims)
        assert (identity.uid if identity else None) == uid

    @pytest.mark.parametrize(
        "claims,expected",
        [
            ({"admin": True}, True),
            ({"admin": "yes"}, False),
            ({"roles": ["grader", "admin"]}, True),
            ({"roles": "admin"}, False),
            ({}, False),
        ],
    )
    def test_is_admin(self, claims, expected):
        assert is_admin(CallerIdentity(uid="u", claims=claims)) is expected

    def test_anonymous_is_not_admin(self):
        assert is_admin(None) is False


class TestIdentityDirectory:
    def test_display_name_prefers_display_name(self, seeded_store, identities):
        seeded_store.put("users", "uid-carol", {"username": "carol"})
        assert identities.display_name("uid-alice") == "Alice A."
        assert identities.display_name("uid-carol") == "carol"
        assert identities.display_name("ghost") is None

    def test_find_uid_by_username(self, seeded_store, identities):
        assert identities.find_uid_by_username("bob") == "uid-bob"
        assert identities.find_uid_by_username("nobody") is None

    def test_get_user(self, seeded_store, identities):
        assert identities.get_user("uid-bob")["username"] == "bob"
        assert identities.get_user("ghost") is None
