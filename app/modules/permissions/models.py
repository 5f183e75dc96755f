# Supabase tables: user_client_permissions, user_system_permissions,
# user_company_permissions, user_secret_permissions, user_vault_group_permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

user_client_permissions:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id, not null)
- client_id: uuid (references clients.id, not null)
- can_view, can_edit, can_create, can_delete: boolean (nullable, default false)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- unique constraint on (user_id, client_id)

user_system_permissions:
- same shape as user_client_permissions, keyed by resource_type: text
  ("companies", "teams", "maintenance-types", "vault")
- unique constraint on (user_id, resource_type)

user_company_permissions:
- id, user_id, created_at, updated_at as above
- company_id: uuid (references companies.id, not null)
- can_view, can_edit, can_delete, can_create_maintenance: boolean
- unique constraint on (user_id, company_id)

user_secret_permissions:
- id, user_id, created_at, updated_at as above
- secret_id: uuid (references vault_secrets.id, on delete cascade)
- can_view, can_edit: boolean
- unique constraint on (user_id, secret_id)

user_vault_group_permissions:
- id, user_id, created_at, updated_at as above
- group_name: text (not null)
- can_view, can_edit: boolean
- unique constraint on (user_id, group_name)

Rows are written through upsert on the unique pair, so a (user, resource)
pair never has more than one row.
"""
