# Supabase table: accessors
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

accessors:
- id: uuid (primary key)
- owner_account_id: uuid (foreign key to auth.users.id, not null)
- email: text (nullable) - unique per owner by convention only, no constraint
- name: text (nullable)
- company: text (nullable)
- phone: text (nullable)
- notes: text (nullable)
- accessor_type: text (not null) - values: employee, owner, subcontractor, other
- registered_account_id: uuid (foreign key to auth.users.id, nullable)
- is_active: boolean (not null, default: true) - soft delete flag
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""
