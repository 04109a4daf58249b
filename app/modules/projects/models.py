# Supabase tables: projects, user_profiles (owned by other services, read-only here)

"""
Expected Supabase table structure (columns read by this service):

projects:
- id: uuid (primary key)
- owner_account_id: uuid (foreign key to auth.users.id, not null)

user_profiles:
- id: uuid (primary key, foreign key to auth.users.id)
- email: text
- full_name: text (nullable)
- company: text (nullable)
"""
