# Supabase tables: teams, team_members, team_project_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

teams:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- created_by: uuid (foreign key to auth.users.id, nullable)
- is_active: boolean (not null, default: true) - soft delete flag
- created_at: timestamp (default: now())

team_members:
- id: uuid (primary key)
- team_id: uuid (foreign key to teams.id, not null)
- account_id: uuid (foreign key to auth.users.id, not null)
- role: text (not null, default: 'member') - values: member, team_admin
- joined_at: timestamp (default: now())
- unique constraint on (account_id) - an account belongs to one team at most

team_project_access:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- team_id: uuid (foreign key to teams.id, not null)
- unique constraint on (project_id, team_id)
"""
