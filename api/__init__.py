"""
API Layer for the Biometric Access Demo

This package provides the FastAPI-based HTTP boundary that exposes:
- Account registration, login and profile endpoints
- Biometric enrollment completion and verification endpoints
- A health check endpoint

Protected routes require an `Authorization: Bearer <token>` header.
"""
