"""Aggregate API v1 router: mounts all sub-routers."""
from fastapi import APIRouter
from mvp_studio.api.v1 import analytics, generate, rate_limit, studio, mvps, prompts, templates

router = APIRouter(prefix="/api/v1")

router.include_router(generate.router, tags=["Generation"])
router.include_router(rate_limit.router, prefix="/rate-limit", tags=["Rate Limit"])
router.include_router(studio.router, prefix="/mvp-studio", tags=["MVP Studio"])
router.include_router(mvps.router, prefix="/mvps", tags=["MVPs"])
router.include_router(prompts.router, prefix="/prompts", tags=["Prompts"])
router.include_router(templates.router, prefix="/rag/templates", tags=["Prompt Templates"])
router.include_router(analytics.router, prefix="/rag/analytics", tags=["Analytics"])
