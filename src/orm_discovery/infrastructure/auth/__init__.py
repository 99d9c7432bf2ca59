"""
Authentication - cookies, headless browser login and session lifecycle.
"""

from .browser import DEFAULT_USER_AGENT, BrowserDriver
from .cookies import COOKIE_CACHE_FILENAME, Cookie, CookieCache, cookie_header
from .login import DEFAULT_STRATEGIES, CredentialStrategy, LoginFlow
from .session_manager import SessionManager, SessionState

__all__ = [
    "COOKIE_CACHE_FILENAME",
    "DEFAULT_STRATEGIES",
    "DEFAULT_USER_AGENT",
    "BrowserDriver",
    "Cookie",
    "CookieCache",
    "CredentialStrategy",
    "LoginFlow",
    "SessionManager",
    "SessionState",
    "cookie_header",
]
