# Supabase tables: project_members, project_member_permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

project_members:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- accessor_id: uuid (foreign key to accessors.id, not null)
- account_id: uuid (foreign key to auth.users.id, nullable) - set once the person has an account
- member_type: text (not null) - copied from accessors.accessor_type
- role_id: uuid (foreign key to roles.id, nullable)
- status: text (not null, default: 'open') - values: open, invited, active, inactive
- invited_at: timestamp (nullable)
- accepted_at: timestamp (nullable)
- team_id: uuid (foreign key to teams.id, nullable) - set for team-synced members
- created_at: timestamp (default: now())
- unique constraint on (project_id, accessor_id)

project_member_permissions:
- id: uuid (primary key)
- project_member_id: uuid (foreign key to project_members.id ON DELETE CASCADE, not null)
- module_key: text (foreign key to permission_modules.module_key, not null)
- can_view, can_create, can_edit, can_delete: boolean (not null, default: false)
- unique constraint on (project_member_id, module_key)

RPC send_project_invitation(p_project_id uuid, p_user_id uuid, p_email text)
  returns json {success: bool, notification_created: bool, error: text}
"""
