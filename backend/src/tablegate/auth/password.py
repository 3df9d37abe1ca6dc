"""Checking Basic credentials against ``membership_users.passHash``."""

import logging

from passlib.context import CryptContext
from passlib.exc import UnknownHashError

logger = logging.getLogger(__name__)


class PasswordService:
    """bcrypt verification compatible with the generator's stored hashes.

    The generator writes PHP ``password_hash`` output, i.e. ``$2y$`` bcrypt.
    passlib verifies every bcrypt ident; hashes made here use ``2y`` as well
    so seeded members look like real ones.
    """

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            bcrypt__ident="2y",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, stored: str | None) -> bool:
        """True only if ``stored`` is a bcrypt hash of ``password``.

        Empty and unrecognised hashes (legacy md5 rows, placeholders) never
        verify.
        """
        if not stored:
            return False
        try:
            return self._context.verify(password, stored)
        except (UnknownHashError, ValueError):
            logger.debug("Stored password hash is not bcrypt")
            return False
