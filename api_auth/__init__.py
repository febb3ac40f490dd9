"""
api-auth: user registration, login and cookie-based JWT sessions.
"""
__version__ = "0.1.0"
