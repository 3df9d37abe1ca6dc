"""Record ownership checks for owner-level permissions."""

from typing import Any

from tablegate.auth.types import Identity
from tablegate.persistence.adapter import PersistenceAdapter
from tablegate.query.builder import build_ownership_check
from tablegate.registry.loader import TableConfig
from tablegate.services.context import Deadline


class OwnershipChecker:
    """Answers "does this caller own this record?" with one point lookup."""

    def __init__(self, db: PersistenceAdapter):
        self._db = db

    def is_owner(
        self,
        identity: Identity,
        table: TableConfig,
        record_id: Any,
        deadline: Deadline | None = None,
    ) -> bool:
        """Check whether ``identity`` owns ``record_id``.

        A table without an owner field has no row ownership, so the answer
        is always False. A missing record is also False; callers that need
        to tell "not found" from "not owned" must check existence first.
        """
        if not table.owner_field:
            return False

        stmt = build_ownership_check(table, record_id, identity.user_id, self._db.dialect)
        if deadline is not None:
            deadline.check()
        return self._db.fetch_one(stmt.sql, stmt.params) is not None
