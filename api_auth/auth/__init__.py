"""
Authentication service for api-auth.

This module provides:
- Credential checking and login
- JWT session tokens delivered in a cookie
- Token refresh and validation
"""
