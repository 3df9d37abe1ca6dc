"""Tests for token decoding, password checks, and header authentication."""

import base64
import time

import jwt
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from passlib.hash import bcrypt

from tablegate.auth.dependencies import require_identity
from tablegate.auth.jwt_service import InvalidTokenError, JWTService, TokenExpiredError
from tablegate.auth.middleware import AuthMiddleware, Authenticator
from tablegate.auth.password import PasswordService
from tablegate.auth.store import MembershipStore
from tablegate.auth.types import Identity

PASSWORD = "s3cret-pass"  # seeded for every conftest member

SECRET = "test-secret"


def make_token(secret=SECRET, **claims) -> str:
    payload = {"sub": "u1", "group": "2", "type": "access", "exp": int(time.time()) + 300}
    payload.update(claims)
    payload = {k: v for k, v in payload.items() if v is not None}
    return jwt.encode(payload, secret, algorithm="HS256")


def basic(user: str, password: str) -> str:
    return "Basic " + base64.b64encode(f"{user}:{password}".encode()).decode()


@pytest.fixture
def store(db_path):
    membership = MembershipStore(f"sqlite:///{db_path}")
    yield membership
    membership.dispose()


@pytest.fixture
def authenticator(store):
    return Authenticator(JWTService(SECRET), PasswordService(rounds=4), store.get_member)


# =============================================================================
# JWTService
# =============================================================================


class TestJWTService:
    def test_decode_claims(self):
        claims = JWTService(SECRET).decode_token(make_token(group=2))
        assert claims.user_id == "u1"
        assert claims.group_id == "2"
        assert claims.type == "access"

    def test_missing_group_is_none(self):
        claims = JWTService(SECRET).decode_token(make_token(group=None))
        assert claims.group_id is None

    def test_expired(self):
        token = make_token(exp=int(time.time()) - 10)
        with pytest.raises(TokenExpiredError):
            JWTService(SECRET).decode_token(token)

    def test_wrong_secret(self):
        with pytest.raises(InvalidTokenError):
            JWTService(SECRET).decode_token(make_token(secret="other-secret"))

    def test_garbage(self):
        with pytest.raises(InvalidTokenError):
            JWTService(SECRET).decode_token("not-a-token")

    def test_missing_subject(self):
        with pytest.raises(InvalidTokenError):
            JWTService(SECRET).decode_token(make_token(sub=None))

    def test_issuer_and_audience_enforced(self):
        service = JWTService(SECRET, issuer="generator", audience="tablegate")
        good = make_token(iss="generator", aud="tablegate")
        assert service.decode_token(good).user_id == "u1"
        with pytest.raises(InvalidTokenError):
            service.decode_token(make_token(iss="someone-else", aud="tablegate"))
        with pytest.raises(InvalidTokenError):
            service.decode_token(make_token(iss="generator"))

    def test_leeway_accepts_small_skew(self):
        token = make_token(exp=int(time.time()) - 5)
        assert JWTService(SECRET, leeway=60).decode_token(token).user_id == "u1"


# =============================================================================
# PasswordService
# =============================================================================


class TestPasswordService:
    def test_hash_and_verify(self):
        service = PasswordService(rounds=4)
        hashed = service.hash("hunter2")
        assert hashed.startswith("$2y$04$")
        assert service.verify("hunter2", hashed)
        assert not service.verify("hunter3", hashed)

    def test_other_bcrypt_idents_verify(self):
        stored = bcrypt.using(rounds=4, ident="2b").hash("hunter2")
        assert PasswordService(rounds=4).verify("hunter2", stored)

    @pytest.mark.parametrize("stored", [None, "", "plain-text", "5f4dcc3b5aa765d61d8327deb882cf99"])
    def test_unusable_hash_never_verifies(self, stored):
        assert PasswordService(rounds=4).verify("password", stored) is False


# =============================================================================
# Authenticator
# =============================================================================


class TestBearer:
    def test_valid_token(self, authenticator):
        identity = authenticator.authenticate(f"Bearer {make_token()}")
        assert identity == Identity("u1", "2")

    def test_scheme_is_case_insensitive(self, authenticator):
        assert authenticator.authenticate(f"bearer {make_token()}") == Identity("u1", "2")

    def test_refresh_token_rejected(self, authenticator):
        assert authenticator.authenticate(f"Bearer {make_token(type='refresh')}") is None

    def test_expired_token_rejected(self, authenticator):
        token = make_token(exp=int(time.time()) - 10)
        assert authenticator.authenticate(f"Bearer {token}") is None

    def test_group_from_member_row(self, authenticator):
        token = make_token(sub="admin", group=None)
        assert authenticator.authenticate(f"Bearer {token}") == Identity("admin", "Admins")

    def test_group_lookup_skips_banned_member(self, authenticator):
        token = make_token(sub="banned", group=None)
        assert authenticator.authenticate(f"Bearer {token}") is None

    @pytest.mark.parametrize("member", ["banned", "pending", "nobody"])
    def test_inactive_member_token_rejected(self, authenticator, member):
        token = make_token(sub=member, group="2")
        assert authenticator.authenticate(f"Bearer {token}") is None

    def test_stale_group_claim_rejected(self, authenticator, caplog):
        token = make_token(sub="u1", group="Admins")
        with caplog.at_level("INFO", logger="tablegate.auth.middleware"):
            assert authenticator.authenticate(f"Bearer {token}") is None
        assert "group is stale for member u1" in caplog.text

    def test_token_needs_member_lookup(self):
        authenticator = Authenticator(JWTService(SECRET))
        assert authenticator.authenticate(f"Bearer {make_token()}") is None
        assert authenticator.authenticate(f"Bearer {make_token(group=None)}") is None


class TestBasic:
    def test_valid_credentials(self, authenticator):
        assert authenticator.authenticate(basic("u2", PASSWORD)) == Identity("u2", "2")

    def test_wrong_password(self, authenticator, caplog):
        with caplog.at_level("INFO", logger="tablegate.auth.middleware"):
            assert authenticator.authenticate(basic("u2", "wrong")) is None
        assert "Basic authentication failed for member u2" in caplog.text

    @pytest.mark.parametrize("member", ["banned", "pending", "nobody"])
    def test_inactive_or_unknown_member(self, authenticator, member):
        assert authenticator.authenticate(basic(member, PASSWORD)) is None

    @pytest.mark.parametrize("credentials", ["!!!", base64.b64encode(b"no-colon").decode()])
    def test_malformed_credentials(self, authenticator, credentials):
        assert authenticator.authenticate(f"Basic {credentials}") is None

    def test_without_password_service(self, store):
        authenticator = Authenticator(JWTService(SECRET), member_lookup=store.get_member)
        assert authenticator.authenticate(basic("u1", PASSWORD)) is None


@pytest.mark.parametrize("header", [None, "", "Digest abc", "Bearer"])
def test_unusable_headers(authenticator, header):
    assert authenticator.authenticate(header) is None


# =============================================================================
# Middleware and dependency
# =============================================================================


def make_app(authenticator, anonymous=None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        AuthMiddleware, get_authenticator=lambda: authenticator, anonymous_identity=anonymous
    )

    @app.get("/whoami")
    def whoami(identity: Identity = Depends(require_identity)):
        return {"user": identity.user_id, "group": identity.group_id}

    return app


class TestMiddleware:
    def test_authenticated_request(self, authenticator):
        client = TestClient(make_app(authenticator))
        response = client.get("/whoami", headers={"Authorization": f"Bearer {make_token()}"})
        assert response.status_code == 200
        assert response.json() == {"user": "u1", "group": "2"}

    def test_missing_credentials_is_401(self, authenticator):
        client = TestClient(make_app(authenticator))
        response = client.get("/whoami")
        assert response.status_code == 401
        assert "Bearer" in response.headers["WWW-Authenticate"]

    def test_disabled_auth_uses_anonymous_identity(self):
        client = TestClient(make_app(None, anonymous=Identity("guest", "anonymous")))
        response = client.get("/whoami", headers={"Authorization": "Bearer ignored"})
        assert response.json() == {"user": "guest", "group": "anonymous"}

    def test_docs_skip_authentication(self, authenticator):
        client = TestClient(make_app(authenticator))
        assert client.get("/openapi.json").status_code == 200
