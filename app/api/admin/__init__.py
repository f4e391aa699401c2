"""
Admin API Routes Package.

Aggregates all admin-related API endpoints:
- hackathons: Hackathons, categories, criteria, teams and judge assignments
- users: Role assignment and the judge roster
"""

from fastapi import APIRouter

from app.api.admin import hackathons, users

# Create main admin router
admin_router = APIRouter()

admin_router.include_router(hackathons.router)
admin_router.include_router(users.router)

__all__ = ["admin_router"]
