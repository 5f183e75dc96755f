from supabase import Client
from app.config import settings
from app.core import crypto
from app.core.errors import VaultEncryptionError, generic_error_message
from app.core.rate_limiter import RateLimiter
from app.core.sanitizer import sanitize_record
from app.modules.permissions.capabilities import Capability
from app.modules.permissions.schemas import ResourceRef
from app.modules.permissions.service import PermissionEvaluator
from app.modules.profiles.schemas import Subject
from app.modules.vault.schemas import SecretCreate, SecretUpdate, SecretResponse, VaultGroupResponse
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

VAULT_RESOURCE = "vault"
_NULLABLE_REFS = ("client_id", "company_id")
# Fields stored verbatim apart from sanitization; the password is encrypted instead.
_FREE_TEXT_FIELDS = ("name", "login", "url", "description", "group_name")


def _normalize_ref(value: Optional[str]) -> Optional[str]:
    if not value or value == "none":
        return None
    return value


class VaultService:
    def __init__(self, supabase: Client, evaluator: PermissionEvaluator, limiter: Optional[RateLimiter] = None):
        self.supabase = supabase
        self.evaluator = evaluator
        self.limiter = limiter

    # --- access rules ---

    def _scope_allows(self, subject: Subject, action: Capability, row: Dict[str, Any]) -> bool:
        """Client grant when the secret belongs to a client, otherwise the system vault grant"""
        client_id = row.get("client_id")
        if client_id:
            return self.evaluator.can(subject, action, ResourceRef.client(client_id))
        return self.evaluator.can(subject, action, ResourceRef.system(VAULT_RESOURCE))

    def _item_allows(self, subject: Subject, action: Capability, row: Dict[str, Any]) -> bool:
        if row.get("id") and self.evaluator.can(subject, action, ResourceRef.secret(str(row["id"]))):
            return True
        group_name = row.get("group_name")
        if group_name and self.evaluator.can(subject, action, ResourceRef.vault_group(group_name)):
            return True
        return self._scope_allows(subject, action, row)

    def can_view_secret(self, subject: Subject, row: Dict[str, Any]) -> bool:
        return subject.is_admin or self._item_allows(subject, Capability.VIEW, row)

    def can_edit_secret(self, subject: Subject, row: Dict[str, Any]) -> bool:
        return subject.is_admin or self._item_allows(subject, Capability.EDIT, row)

    def can_delete_secret(self, subject: Subject, row: Dict[str, Any]) -> bool:
        return subject.is_admin or self._scope_allows(subject, Capability.DELETE, row)

    def can_create_secret(self, subject: Subject, client_id: Optional[str] = None) -> bool:
        if subject.is_admin:
            return True
        if not self.evaluator.can(subject, Capability.CREATE, ResourceRef.system(VAULT_RESOURCE)):
            return False
        if client_id:
            return self.evaluator.can(subject, Capability.CREATE, ResourceRef.client(client_id))
        return True

    # --- helpers ---

    def _check_rate_limit(self, subject: Subject) -> None:
        if self.limiter is None:
            return
        if self.limiter.is_limited(
            f"secret_{subject.id}",
            settings.create_rate_limit_attempts,
            settings.create_rate_limit_window_ms,
        ):
            raise HTTPException(
                status_code=429,
                detail="Too many attempts. Please wait a moment and try again."
            )

    def _prepare_fields(self, subject: Subject, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize free text, normalize optional references and encrypt the password"""
        text = sanitize_record({k: v for k, v in fields.items() if k in _FREE_TEXT_FIELDS})
        prepared = {**fields, **text}
        for key in _NULLABLE_REFS:
            if key in prepared:
                prepared[key] = _normalize_ref(prepared[key])
        if "url" in prepared and not prepared["url"]:
            prepared["url"] = None
        if "group_name" in prepared:
            prepared["group_name"] = prepared["group_name"].strip() if prepared["group_name"] else None
        if "name" in prepared and not (prepared["name"] or "").strip():
            raise HTTPException(status_code=422, detail="Name must contain text")
        if "password" in prepared:
            prepared["password"] = crypto.encrypt(prepared["password"], subject.id)
        return prepared

    def _save_group_if_new(self, subject: Subject, group_name: Optional[str]) -> None:
        if not group_name:
            return
        try:
            existing = self.supabase.table("vault_groups")\
                .select("id")\
                .eq("name", group_name)\
                .limit(1)\
                .execute()
            if existing.data:
                return
            self.supabase.table("vault_groups")\
                .insert({"name": group_name, "user_id": subject.id})\
                .execute()
        except Exception as e:
            # Concurrent saves of the same label hit the unique constraint; the label exists either way.
            logger.info(f"Vault group '{group_name}' not saved: {e}")

    def _fetch_row(self, secret_id: str) -> Dict[str, Any]:
        result = self.supabase.table("vault_secrets")\
            .select("*")\
            .eq("id", secret_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Secret not found")
        return result.data[0]

    def _drop_secret_grants(self, secret_id: str) -> None:
        """Remove per-secret grants once the secret is gone (the FK cascade does the same)"""
        try:
            self.supabase.table("user_secret_permissions")\
                .delete()\
                .eq("secret_id", secret_id)\
                .execute()
        except Exception as e:
            logger.warning(f"Grants of deleted secret {secret_id} not removed: {e}")

    def _scan_secrets(self, client_id: Optional[str], company_id: Optional[str]) -> Iterator[Dict[str, Any]]:
        """Secret rows newest first, fetched one page at a time"""
        page_size = settings.vault_list_limit
        start = 0
        while True:
            query = self.supabase.table("vault_secrets").select("*")
            if client_id:
                query = query.eq("client_id", client_id)
            if company_id:
                query = query.eq("company_id", company_id)
            rows = query.order("created_at", desc=True)\
                .range(start, start + page_size - 1)\
                .execute().data or []
            yield from rows
            if len(rows) < page_size:
                return
            start += page_size

    def _to_response(self, subject: Subject, row: Dict[str, Any]) -> tuple:
        opened = crypto.decrypt_with_status(row.get("password") or "", subject.id)
        return SecretResponse(**{**row, "password": opened.value}), opened

    # --- operations ---

    def list_secrets(
        self,
        subject: Subject,
        client_id: Optional[str] = None,
        company_id: Optional[str] = None,
        group: Optional[str] = None,
    ) -> List[SecretResponse]:
        """List secrets visible to subject, newest first, each decrypted on its own.

        Rows are filtered after fetching, so pages are read until
        settings.vault_list_limit visible secrets are found or the table ends.
        """
        secrets = []
        passthrough = 0
        try:
            for row in self._scan_secrets(client_id, company_id):
                if group and group.lower() not in (row.get("group_name") or "").lower():
                    continue
                if not self.can_view_secret(subject, row):
                    continue
                response, opened = self._to_response(subject, row)
                if not opened.decrypted and row.get("password"):
                    passthrough += 1
                secrets.append(response)
                if len(secrets) >= settings.vault_list_limit:
                    break
        except Exception as e:
            logger.error(f"Error listing vault secrets: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))
        if passthrough:
            logger.debug(f"{passthrough} secret(s) returned without decryption for user {subject.id}")
        return secrets

    def get_secret(self, subject: Subject, secret_id: str) -> SecretResponse:
        try:
            row = self._fetch_row(secret_id)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error fetching secret {secret_id}: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))
        if not self.can_view_secret(subject, row):
            raise HTTPException(status_code=403, detail="You do not have access to this secret")
        return self._to_response(subject, row)[0]

    def create_secret(self, subject: Subject, secret_data: SecretCreate) -> SecretResponse:
        """Create a secret; the password is encrypted under the creator's key"""
        self._check_rate_limit(subject)
        client_id = _normalize_ref(secret_data.client_id)
        if not self.can_create_secret(subject, client_id):
            raise HTTPException(status_code=403, detail="You do not have permission to create secrets here")
        try:
            prepared = self._prepare_fields(subject, secret_data.model_dump())
            self._save_group_if_new(subject, prepared.get("group_name"))
            result = self.supabase.table("vault_secrets").insert({
                **prepared,
                "user_id": subject.id,
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create secret")

            logger.info(f"User {subject.id} created vault secret {result.data[0].get('id')}")
            return self._to_response(subject, result.data[0])[0]
        except HTTPException:
            raise
        except VaultEncryptionError as e:
            logger.error(f"Encryption failed for user {subject.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to encrypt secret")
        except Exception as e:
            logger.error(f"Error creating secret: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))

    def update_secret(self, subject: Subject, secret_id: str, secret_data: SecretUpdate) -> SecretResponse:
        """Update a secret; a new password is encrypted under the editor's key"""
        try:
            row = self._fetch_row(secret_id)
            changes = {
                k: v for k, v in secret_data.model_dump(exclude_unset=True).items()
                if v is not None or k not in ("name", "password")
            }
            if not self.can_edit_secret(subject, row):
                raise HTTPException(status_code=403, detail="You do not have permission to edit this secret")
            prepared = self._prepare_fields(subject, changes)
            target = {**row, **prepared}
            moved = any(key in prepared and prepared[key] != row.get(key) for key in _NULLABLE_REFS)
            # Secret and group grants travel with the secret; a move needs edit on the destination scope.
            allowed = self._scope_allows(subject, Capability.EDIT, target) if moved else self.can_edit_secret(subject, target)
            if not (subject.is_admin or allowed):
                raise HTTPException(status_code=403, detail="You do not have permission to move this secret there")
            self._save_group_if_new(subject, prepared.get("group_name"))
            prepared["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("vault_secrets")\
                .update(prepared)\
                .eq("id", secret_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Secret not found")

            return self._to_response(subject, result.data[0])[0]
        except HTTPException:
            raise
        except VaultEncryptionError as e:
            logger.error(f"Encryption failed for user {subject.id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to encrypt secret")
        except Exception as e:
            logger.error(f"Error updating secret {secret_id}: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))

    def delete_secret(self, subject: Subject, secret_id: str) -> bool:
        try:
            row = self._fetch_row(secret_id)
            if not self.can_delete_secret(subject, row):
                raise HTTPException(status_code=403, detail="You do not have permission to delete this secret")

            result = self.supabase.table("vault_secrets")\
                .delete()\
                .eq("id", secret_id)\
                .execute()
            self._drop_secret_grants(secret_id)

            logger.info(f"User {subject.id} deleted vault secret {secret_id}")
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error deleting secret {secret_id}: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))

    def list_groups(self) -> List[VaultGroupResponse]:
        try:
            result = self.supabase.table("vault_groups")\
                .select("id, name")\
                .order("name")\
                .execute()
            return [VaultGroupResponse(**g) for g in result.data]
        except Exception as e:
            logger.error(f"Error listing vault groups: {e}")
            raise HTTPException(status_code=500, detail=generic_error_message(e))
