# Supabase table: permission_modules
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

permission_modules:
- module_key: text (primary key) - one of app.config.permissions_config.ModuleKey
- module_name: text (not null)
- description: text (nullable)
- display_order: integer (not null, default: 0)
- is_active: boolean (not null, default: true)
"""
