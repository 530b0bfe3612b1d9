"""
API v1 Router
Main router for all API v1 endpoints
"""

from fastapi import APIRouter

from youthhub.api.v1.endpoints import admin_reports, admin_users, auth, comments, events, likes, posts, reports

api_router = APIRouter()

# Authentication endpoints
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])

# Board
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
api_router.include_router(comments.router, prefix="/posts/{post_id}/comments", tags=["comments"])
api_router.include_router(likes.router, prefix="/likes", tags=["likes"])

# Moderation
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(admin_reports.router, prefix="/admin/reports", tags=["admin"])

# Calendar
api_router.include_router(events.router, prefix="/events", tags=["events"])

# User administration
api_router.include_router(admin_users.router, prefix="/admin/users", tags=["admin"])
