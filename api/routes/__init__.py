"""
API Routes Package

This package contains route handlers organized by feature:
- accounts.py: registration, login and profile
- biometric.py: enrollment completion and biometric verification
"""

from api.routes.accounts import router as accounts_router
from api.routes.biometric import router as biometric_router

__all__ = [
    "accounts_router",
    "biometric_router",
]
