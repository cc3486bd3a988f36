# Supabase table: model_definitions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in store.py

"""
Expected Supabase table structure:

model_definitions:
- name: text (primary key) - ModelDeclaration.name
- table_name: text (not null) - resolved physical table name
- definition: jsonb (not null) - full declaration (fields, owner_field, policy)
- updated_at: timestamp (default: now())

When MODEL_STORE_BACKEND=file the same declaration JSON is written to
<MODELS_DIR>/<name>.json instead.

Published models additionally get one physical table each, created by
materializer.py in the DATABASE_URL database:
- id: text (primary key, uuid generated by the record handler)
- <owner_field>: text (nullable) - only when owner_field is declared
- <declared fields>: text | numeric | boolean | timestamptz | jsonb
- created_at: timestamptz (default: now())
- updated_at: timestamptz (default: now())
"""
