from supabase import Client
from app.config.permissions_config import get_kind_config, get_upsert_conflict
from app.core.errors import GrantMutationError
from app.modules.permissions.capabilities import (
    Capability, CapabilitySet, ResourceKind,
    apply_capability, evaluate, toggled,
)
from app.modules.permissions.schemas import Grant, ResourceRef, BulkToggleResponse
from app.modules.profiles.schemas import Subject
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)


def _row_to_grant(kind: ResourceKind, row: dict) -> Grant:
    key_column = get_kind_config(kind.value)["key_column"]
    return Grant(
        id=row.get("id"),
        user_id=row["user_id"],
        kind=kind,
        resource_id=str(row[key_column]),
        capabilities=CapabilitySet.from_row(kind, row),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


class PermissionEvaluator:
    """Answers "can subject S do action A on resource R?".

    Grant rows are loaded once per (user, kind) and kept in the request-scoped
    cache when one is given, so a page checking many resources costs one query
    per table.
    """

    def __init__(self, supabase: Client, cache: Optional[Dict[str, Any]] = None):
        self.supabase = supabase
        self.cache = cache if cache is not None else {}

    def _grant_rows(self, user_id: str, kind: ResourceKind) -> List[dict]:
        cache_key = f"grants:{user_id}:{kind.value}"
        if cache_key in self.cache:
            return self.cache[cache_key]
        try:
            result = self.supabase.table(get_kind_config(kind.value)["table"])\
                .select("*")\
                .eq("user_id", user_id)\
                .execute()
            rows = result.data or []
        except Exception as e:
            logger.error(f"Error loading {kind.value} grants for user {user_id}: {e}")
            return []
        self.cache[cache_key] = rows
        return rows

    def invalidate(self, user_id: str) -> None:
        """Drop cached grant rows for a user (after a mutation in the same request)."""
        prefix = f"grants:{user_id}:"
        for key in [k for k in self.cache if k.startswith(prefix)]:
            del self.cache[key]

    def list_grants(self, user_id: str, kind: ResourceKind) -> List[Grant]:
        return [_row_to_grant(kind, row) for row in self._grant_rows(user_id, kind)]

    def get_grant(self, user_id: str, ref: ResourceRef) -> Optional[Grant]:
        key_column = get_kind_config(ref.kind.value)["key_column"]
        for row in self._grant_rows(user_id, ref.kind):
            if str(row.get(key_column)) == ref.resource_id:
                return _row_to_grant(ref.kind, row)
        return None

    def can(self, subject: Subject, action: Capability, ref: ResourceRef) -> bool:
        """Effective permission of subject for action on ref"""
        if subject.is_admin:
            return True
        grant = self.get_grant(subject.id, ref)
        return evaluate(False, grant.capabilities if grant else None, action)

    def has_any_client_view(self, subject: Subject) -> bool:
        if subject.is_admin:
            return True
        return any(g.capabilities.view for g in self.list_grants(subject.id, ResourceKind.CLIENT))


class PermissionMutator:
    """Applies capability changes to grant rows, enforcing the implication rules."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _fetch_row(self, user_id: str, ref: ResourceRef) -> Optional[dict]:
        config = get_kind_config(ref.kind.value)
        try:
            result = self.supabase.table(config["table"])\
                .select("*")\
                .eq("user_id", user_id)\
                .eq(config["key_column"], ref.resource_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            raise GrantMutationError(f"Failed to read grant: {e}", ref.resource_id) from e
        return result.data[0] if result.data else None

    def _write(self, user_id: str, ref: ResourceRef, capabilities: CapabilitySet) -> Grant:
        config = get_kind_config(ref.kind.value)
        payload = {
            "user_id": user_id,
            config["key_column"]: ref.resource_id,
            **capabilities.to_row(ref.kind),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            result = self.supabase.table(config["table"])\
                .upsert(payload, on_conflict=get_upsert_conflict(ref.kind.value))\
                .execute()
        except Exception as e:
            raise GrantMutationError(f"Failed to write grant: {e}", ref.resource_id) from e
        if not result.data:
            raise GrantMutationError("Grant write returned no row", ref.resource_id)
        return _row_to_grant(ref.kind, result.data[0])

    def set_capability(
        self,
        user_id: str,
        ref: ResourceRef,
        capability: Capability,
        value: bool,
    ) -> Optional[Grant]:
        """Set one capability on the (user, resource) row.

        Revoking view clears every other capability; granting anything else grants
        view. A missing row is created on grant and left alone on revoke (returns None).

        Raises:
            ValueError: If the resource kind does not carry the capability.
            GrantMutationError: If the row could not be read or written.
        """
        existing = self._fetch_row(user_id, ref)
        current = CapabilitySet.from_row(ref.kind, existing) if existing else None
        updated = apply_capability(current, ref.kind, capability, value)
        if updated is None:
            logger.debug(f"No {ref.kind.value} grant to revoke for user {user_id} on {ref.resource_id}")
            return None
        grant = self._write(user_id, ref, updated)
        logger.info(
            f"Set {capability.value}={value} for user {user_id} on {ref.kind.value} {ref.resource_id}"
        )
        return grant

    def toggle_all(
        self,
        user_id: str,
        refs: Iterable[ResourceRef],
        enable: bool,
    ) -> BulkToggleResponse:
        """Set every capability of each resource to enable.

        Each resource is handled on its own: a failure is recorded and the
        remaining resources are still processed.
        """
        updated: List[str] = []
        skipped: List[str] = []
        failed: List[str] = []
        for ref in refs:
            resource_id = ref.resource_id
            try:
                existing = self._fetch_row(user_id, ref)
                if existing is None and not enable:
                    skipped.append(resource_id)
                    continue
                self._write(user_id, ref, toggled(ref.kind, enable))
                updated.append(resource_id)
            except Exception as e:
                logger.error(f"Error toggling {ref.kind.value} grant {resource_id} for user {user_id}: {e}")
                failed.append(resource_id)

        state = "enabled" if enable else "disabled"
        message = f"{len(updated)} permission(s) {state}, {len(skipped)} skipped"
        if failed:
            message += f", {len(failed)} failed"
        return BulkToggleResponse(
            user_id=user_id,
            enable=enable,
            updated=updated,
            skipped=skipped,
            failed=failed,
            message=message,
        )
