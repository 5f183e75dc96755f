# Supabase tables: vault_secrets, vault_groups
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

vault_secrets:
- id: uuid (primary key)
- name: text (not null)
- password: text (not null) - AES-GCM ciphertext, base64; never plaintext
- login: text (nullable)
- url: text (nullable)
- description: text (nullable)
- group_name: text (nullable) - label from vault_groups
- client_id: uuid (nullable, references clients.id)
- company_id: uuid (nullable, references companies.id)
- user_id: uuid (not null) - creator; access is decided by grants, not by this column
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

vault_groups:
- id: uuid (primary key)
- name: text (not null, unique)
- user_id: uuid (not null) - creator
- created_at: timestamp (default: now())
"""
