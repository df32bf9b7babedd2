"""
auth/service.py -- Registration, login, current-user and profile-update flows.

AuthFlow is the orchestrator over PasswordHasher, TokenService and UserStore.
Identity is always an explicit argument: current_user() takes the token,
update_profile() takes the authenticated user id. Nothing is looked up from
request-scoped or global state.

Account enumeration [C1]:
  login() raises the same AuthenticationFailed for an unknown email and a
  wrong password, and runs bcrypt in both cases (against the hasher's dummy
  digest when the email is unknown) so response time does not reveal which.
  A malformed email is treated the same as an unknown one.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email

from auth.models import User, UserDraft
from auth.passwords import PasswordHasher
from auth.store import UserStore, normalize_email
from auth.tokens import TokenService
from core.errors import AuthenticationFailed, HashingError, NotFound, TokenInvalid, ValidationError

logger = logging.getLogger("conduit.auth")


class AuthFlow:
    """Account use-cases.

    Usage:
        flow = AuthFlow(store, hasher, tokens)
        user = flow.register(UserDraft(email="a@x.com", username="alice", password="secret"))
        user = flow.login("a@x.com", "secret")
        me = flow.current_user(user.token)
    """

    def __init__(self, store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    def register(self, draft: UserDraft) -> User:
        """Create an account and return it with a fresh token attached."""
        email = self._validate_email(_required(draft.email, "email"))
        username = _required(draft.username, "username")
        password = _required(draft.password, "password")

        user = User(
            email=email,
            username=username,
            password_hash=self._hash(password),
            bio=draft.bio,
            image=draft.image,
        )
        created = self.store.create(user)
        logger.info("Registered user id=%s username=%s", created.id, created.username)
        return self._with_token(created)

    def login(self, email: str, password: str) -> User:
        """Return the user for valid credentials, with a fresh token attached.

        Raises AuthenticationFailed for any credential problem, with no hint
        as to which part was wrong.
        """
        try:
            user = self.store.get_by_email(self._validate_email(email or ""))
        except (ValidationError, NotFound):
            # Equalize timing -- do NOT return early before running bcrypt.
            self.hasher.verify(self.hasher.dummy_hash, password or "")
            logger.info("Failed login (unknown or malformed email)")
            raise AuthenticationFailed() from None

        try:
            ok = self.hasher.verify(user.password_hash, password or "")
        except HashingError:
            logger.error("Stored password digest for user id=%s is malformed", user.id)
            raise AuthenticationFailed() from None
        if not ok:
            logger.info("Failed login for user id=%s", user.id)
            raise AuthenticationFailed()
        return self._with_token(user)

    def current_user(self, token: str) -> User:
        """Resolve token to the user it was issued for.

        TokenInvalid / TokenExpired propagate from TokenService. A valid token
        for a user that no longer exists is TokenInvalid -- never a different
        or stale user.
        """
        user_id = self.tokens.verify(token)
        try:
            user = self.store.get_by_id(user_id)
        except NotFound:
            logger.warning("Token references missing user id=%s", user_id)
            raise TokenInvalid() from None
        user.token = token
        return user

    def update_profile(self, auth_user_id: int, draft: UserDraft) -> User:
        """Overwrite the supplied fields of the caller's own record.

        Fields left as None are unchanged. A new password is re-hashed before
        it reaches the store. The store call is scoped to auth_user_id, so this
        path can never touch another user's record.
        """
        fields: dict = {}
        if draft.email is not None:
            fields["email"] = self._validate_email(_required(draft.email, "email"))
        if draft.username is not None:
            fields["username"] = _required(draft.username, "username")
        if draft.password is not None:
            fields["password_hash"] = self._hash(_required(draft.password, "password"))
        if draft.bio is not None:
            fields["bio"] = draft.bio
        if draft.image is not None:
            fields["image"] = draft.image

        updated = self.store.update(auth_user_id, **fields)
        logger.info("Updated user id=%s fields=%s", auth_user_id, sorted(fields))
        return self._with_token(updated)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _with_token(self, user: User) -> User:
        user.token = self.tokens.issue(user.id)
        return user

    def _hash(self, password: str) -> str:
        try:
            return self.hasher.hash(password)
        except HashingError as exc:
            raise ValidationError(f"password: {exc.message}") from exc

    @staticmethod
    def _validate_email(email: str) -> str:
        """Syntax-check email and return it in the form the store keys on."""
        try:
            return normalize_email(validate_email(email.strip(), check_deliverability=False).normalized)
        except EmailNotValidError as exc:
            raise ValidationError(f"email: {exc}") from exc


def _required(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} can't be blank")
    return value
