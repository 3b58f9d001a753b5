from fastapi import APIRouter

from probehost.api.routes import plugins, probes, utils

api_router = APIRouter()
api_router.include_router(plugins.router)
api_router.include_router(probes.router)
api_router.include_router(utils.router)
