# Supabase table: permission_audit_log
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

permission_audit_log:
- id: uuid (primary key)
- account_id: uuid (nullable) - acting account
- project_id: uuid (nullable)
- action: text (not null) - one of app.modules.audit.schemas.AuditAction
- details: jsonb (nullable)
- created_at: timestamp (default: now())
"""
