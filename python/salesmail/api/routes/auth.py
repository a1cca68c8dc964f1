"""Auth route group, mounted at /api/v1/auth.

Login/session handlers register on this router; the app factory mounts it.
"""

from fastapi import APIRouter

router = APIRouter()
