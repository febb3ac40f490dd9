"""
User registration and listing for api-auth.
"""
