"""API router configuration."""

from fastapi import APIRouter

from release_sentry.modules.crawler.interfaces.router import router as crawler_router

api_router = APIRouter()

# Crawler
api_router.include_router(crawler_router)
