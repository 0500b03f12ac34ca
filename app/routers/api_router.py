from fastapi import APIRouter
from app.routers import review_agent

# Centralized API router hub
# Routers are aggregated here and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(review_agent.router, tags=["Competency Review"])
