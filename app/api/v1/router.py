# ============================================================================
# Main API Router
# ============================================================================
from fastapi import APIRouter

from app.api.v1 import daily, internal, leaderboard, parents, pets, practice, students

api_router = APIRouter()

api_router.include_router(students.router)
api_router.include_router(parents.router)
api_router.include_router(practice.router)
api_router.include_router(pets.router)
api_router.include_router(daily.router)
api_router.include_router(leaderboard.router)
api_router.include_router(internal.router)
