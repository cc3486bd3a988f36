# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration (auth.users table)
# - User login and session management
# - JWT token generation and validation
# - Password hashing and security

"""
Supabase Auth provides:
- auth.sign_up() - Register new users
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.admin.update_user_by_id() - Write app_metadata (service role key only)

A user's role lives in app_metadata["role"] (e.g. "Admin", "Manager",
"Viewer"). app_metadata is server-side and cannot be changed by the user;
users without a role get DEFAULT_ROLE. Model access policies match on this
role string.
"""
