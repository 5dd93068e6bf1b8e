import time

import jwt
from flask import session

from ..models import UserData

SESSION_KEYS = ("accessToken", "role", "userName", "userEmail", "memberId", "expirationTime")


def token_expiry_ms(token):
    """Return the ``exp`` claim of a JWT in epoch milliseconds, or None.

    The signature is not checked: the backend owns the token, we only read
    when it stops being worth sending.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return int(exp) * 1000 if exp is not None else None


class SessionContext:
    """The logged-in user's session, stored under flat keys in ``store``.

    ``store`` defaults to the Flask session cookie. ``init`` fills it from a
    login response and ``teardown`` clears every key at once.
    """

    def __init__(self, store):
        self._store = store

    @classmethod
    def current(cls):
        return cls(session)

    def init(self, login):
        if not login.access_token:
            raise ValueError("No token received")
        expiration = login.expiration_time or token_expiry_ms(login.access_token)
        self._store["accessToken"] = login.access_token
        self._store["role"] = login.user.role
        self._store["userName"] = login.user.name
        self._store["userEmail"] = login.user.email
        self._store["memberId"] = login.user.member_id
        self._store["expirationTime"] = expiration

    def teardown(self):
        for key in SESSION_KEYS:
            self._store.pop(key, None)

    @property
    def access_token(self):
        return self._store.get("accessToken")

    @property
    def role(self):
        return self._store.get("role")

    @property
    def member_id(self):
        value = self._store.get("memberId")
        return None if value in (None, "") else int(value)

    @property
    def expiration_time(self):
        value = self._store.get("expirationTime")
        return None if value in (None, "") else int(value)

    @property
    def user(self):
        if not self.access_token:
            return None
        return UserData(
            member_id=self.member_id,
            name=self._store.get("userName") or "",
            email=self._store.get("userEmail") or "",
            role=self.role or "",
        )

    def is_expired(self, now_ms=None):
        expiration = self.expiration_time
        if expiration is None:
            return False
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return now_ms >= expiration

    @property
    def is_authenticated(self):
        return bool(self.access_token) and not self.is_expired()

    def has_role(self, *roles):
        return bool(self.role) and (not roles or self.role in roles)
