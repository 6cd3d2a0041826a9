"""Main admin router combining all sub-routers."""

from fastapi import APIRouter

from ragcache.api.admin.cache_admin import router as cache_router

router = APIRouter()

# Include all sub-routers
router.include_router(cache_router)
