# Supabase tables: project_content_defaults, content_visibility_overrides
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

project_content_defaults:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- module_key: text (foreign key to permission_modules.module_key, not null)
- default_visibility: text (not null) - values: all_participants, team_only, owner_only
- updated_at: timestamp (nullable)
- unique constraint on (project_id, module_key)
A missing row means all_participants.

content_visibility_overrides:
- id: uuid (primary key)
- project_id: uuid (foreign key to projects.id, not null)
- module_key: text (not null)
- content_id: uuid (not null) - id of the task, defect, diary entry, ...
- visibility: text (not null)
- created_by: uuid (nullable)
- updated_at: timestamp (nullable)
- unique constraint on (module_key, content_id)
"""
