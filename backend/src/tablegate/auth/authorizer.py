"""Authorization decision procedure.

Combines the group permission level with record ownership:

1. resolve the level for (group, table, action)
2. NONE denies
3. GROUP and ALL allow
4. OWNER allows a single-record action only on owned records; a collection
   view is allowed with an owner scope that restricts the listing to the
   caller's rows. Tables without an owner field deny at OWNER level.
"""

import logging
from dataclasses import dataclass
from typing import Any

from tablegate.auth.ownership import OwnershipChecker
from tablegate.auth.permissions import PermissionResolver
from tablegate.auth.types import Action, Identity, PermissionLevel
from tablegate.core.errors import Forbidden
from tablegate.query.types import OwnerScope
from tablegate.registry.loader import TableConfig
from tablegate.services.context import Deadline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationDecision:
    """An allow decision. Denials are raised as Forbidden instead."""

    level: PermissionLevel
    owner_scope: OwnerScope | None = None


class Authorizer:
    def __init__(self, resolver: PermissionResolver, ownership: OwnershipChecker):
        self.resolver = resolver
        self.ownership = ownership

    def authorize(
        self,
        identity: Identity,
        table: TableConfig,
        action: Action,
        record_id: Any = None,
        deadline: Deadline | None = None,
    ) -> AuthorizationDecision:
        """Decide whether ``identity`` may perform ``action`` on ``table``.

        Args:
            identity: The authenticated caller
            table: Configuration of the target table
            action: The requested action
            record_id: Target record for single-record actions, None for a
                       collection view or a create
            deadline: Checked before the ownership lookup

        Returns:
            AuthorizationDecision; ``owner_scope`` is set when a listing has
            to be restricted to the caller's rows

        Raises:
            Forbidden: If the caller has no right to the action
        """
        level = self.resolver.resolve(identity.group_id, table.name, action)

        if level is PermissionLevel.NONE:
            self._deny(identity, table, action, "no permission")

        if level in (PermissionLevel.GROUP, PermissionLevel.ALL):
            return AuthorizationDecision(level)

        # OWNER
        if not table.owner_field:
            self._deny(identity, table, action, "owner level without owner field")

        if record_id is None:
            if action is not Action.VIEW:
                self._deny(identity, table, action, "owner level needs a record")
            return AuthorizationDecision(
                level, owner_scope=OwnerScope(table.owner_field, identity.user_id)
            )

        if not self.ownership.is_owner(identity, table, record_id, deadline):
            self._deny(identity, table, action, "not owner")
        return AuthorizationDecision(level)

    def _deny(self, identity: Identity, table: TableConfig, action: Action, why: str) -> None:
        logger.info(
            "Denied %s on %s for user %s (group %s): %s",
            action.value,
            table.name,
            identity.user_id,
            identity.group_id,
            why,
        )
        raise Forbidden()
