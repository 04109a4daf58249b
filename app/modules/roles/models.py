# Supabase tables: roles, role_permissions, project_available_roles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

roles:
- id: uuid (primary key)
- owner_account_id: uuid (foreign key to auth.users.id, not null)
- name: text (not null)
- description: text (nullable)
- is_active: boolean (not null, default: true) - soft delete flag
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

role_permissions:
- id: uuid (primary key)
- role_id: uuid (foreign key to roles.id, not null)
- module_key: text (foreign key to permission_modules.module_key, not null)
- can_view, can_create, can_edit, can_delete: boolean (not null, default: false)
- unique constraint on (role_id, module_key)
- check (NOT (can_create OR can_edit OR can_delete) OR can_view)

project_available_roles:
- project_id: uuid (foreign key to projects.id, not null)
- role_id: uuid (foreign key to roles.id, not null)
- unique constraint on (project_id, role_id)
"""
