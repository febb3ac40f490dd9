"""
Test cases for token issuing, validation and refresh.
"""
import time
import jwt
import pytest

from api_auth.auth.errors import Unauthorized
from api_auth.auth.jwt import IssuedToken, TokenClaims, TokenSigner

DAY = 24 * 60 * 60
SECRET = "unit-test-secret-for-the-token-signer"
OTHER_SECRET = "another-signing-secret-of-sufficient-length"


class FrozenClock:
    """Clock that only moves when told to."""
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(time.time())


@pytest.fixture
def signer(clock):
    return TokenSigner(secret_key=SECRET, expires_in=DAY, max_refresh_age=15 * DAY, leeway=5, clock=clock)


def test_issue_sets_expiry(signer, clock):
    issued = signer.issue("Ada")

    assert isinstance(issued, IssuedToken)
    assert issued.max_age == DAY
    assert issued.claims.name == "Ada"
    assert issued.claims.iat == pytest.approx(clock.now, abs=0.001)
    assert issued.claims.exp == pytest.approx(issued.claims.iat + DAY)

    payload = jwt.decode(issued.token, SECRET, algorithms=["HS256"])
    assert set(payload) == {"name", "iat", "exp"}


def test_decode_round_trip(signer):
    issued = signer.issue("Ada")
    claims = signer.decode(issued.token)

    assert isinstance(claims, TokenClaims)
    assert claims == issued.claims


def test_refresh_with_frozen_clock_still_changes_token(signer):
    first = signer.issue("Ada")
    second = signer.refresh(first.token)

    assert isinstance(second, IssuedToken)
    assert second.claims.iat > first.claims.iat
    assert second.token != first.token
    assert second.claims.name == "Ada"


def test_refresh_within_window_after_expiry(signer, clock):
    token = signer.encode({"name": "Ada", "iat": clock.now - 3 * DAY, "exp": clock.now - 2 * DAY})

    refreshed = signer.refresh(token)

    assert isinstance(refreshed, IssuedToken)
    assert refreshed.claims.iat == pytest.approx(clock.now, abs=0.001)
    assert refreshed.claims.name == "Ada"


def test_refresh_rejects_stale_token(signer, clock):
    token = signer.encode({"name": "Ada", "iat": clock.now - 20 * DAY, "exp": clock.now - 19 * DAY})

    result = signer.refresh(token)

    assert isinstance(result, Unauthorized)
    assert result.message == "Token is too old to be refreshed"
    assert result.body() == {"message": "Token is too old to be refreshed"}


def test_refresh_accepts_token_just_inside_window(signer, clock):
    token = signer.encode({"name": "Ada", "iat": clock.now - 15 * DAY + 60, "exp": clock.now - 14 * DAY})

    assert isinstance(signer.refresh(token), IssuedToken)


def test_decode_rejects_expired_token(signer, clock):
    token = signer.encode({"name": "Ada", "iat": clock.now - 2 * DAY, "exp": clock.now - DAY})

    result = signer.decode(token)

    assert isinstance(result, Unauthorized)
    assert result.message == "Token has expired"


def test_decode_rejects_other_secret(signer, clock):
    token = jwt.encode({"name": "Ada", "iat": clock.now, "exp": clock.now + DAY}, OTHER_SECRET, algorithm="HS256")

    assert signer.decode(token) == Unauthorized("Invalid token")


def test_decode_rejects_garbage(signer):
    assert isinstance(signer.decode("definitely-not-a-jwt"), Unauthorized)
    assert isinstance(signer.refresh(""), Unauthorized)


def test_decode_requires_name_claim(signer, clock):
    token = signer.encode({"iat": clock.now, "exp": clock.now + DAY})

    assert isinstance(signer.decode(token), Unauthorized)
    assert isinstance(signer.refresh(token), Unauthorized)


def test_decode_rejects_non_string_name(signer, clock):
    token = signer.encode({"name": ["Ada"], "iat": clock.now, "exp": clock.now + DAY})

    assert signer.decode(token) == Unauthorized("Invalid token claims")


def test_decode_rejects_none_algorithm(signer, clock):
    token = jwt.encode({"name": "Ada", "iat": clock.now, "exp": clock.now + DAY}, None, algorithm="none")

    assert isinstance(signer.decode(token), Unauthorized)


@pytest.mark.parametrize("iat", [[1], {"t": 1}])
def test_decode_rejects_non_numeric_iat(signer, clock, iat):
    token = signer.encode({"name": "Ada", "iat": iat, "exp": clock.now + DAY})

    assert isinstance(signer.decode(token), Unauthorized)
    assert isinstance(signer.refresh(token), Unauthorized)
