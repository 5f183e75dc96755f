# Supabase tables: user_profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

user_profiles:
- id: uuid (primary key)
- user_id: uuid (references auth.users.id, not null, unique) - one profile per identity
- display_name: text (nullable)
- email: text (nullable) - synced from auth.users
- is_admin: boolean (nullable, default false) - writable only by admins (RLS)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Note: is_admin is the absolute override of the permission engine. Grants stored
for an admin stay in their tables and take effect once the flag is cleared.
"""
