"""
Tandem — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import interactions, matches, recommendations, tags, user_tags

router = APIRouter()

router.include_router(tags.router, prefix="/tags", tags=["Tags"])
router.include_router(user_tags.router, prefix="/users", tags=["User Tags"])
router.include_router(interactions.router, prefix="/interactions", tags=["Interactions"])
router.include_router(recommendations.router, prefix="/recommendations", tags=["Recommendations"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
