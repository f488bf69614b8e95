# FILE: backend/ecopromise/main.py
# Application assembly: logging, middleware, error handlers and the /api router.

from fastapi import FastAPI, status, APIRouter
from fastapi.middleware.cors import CORSMiddleware
import logging

from ecopromise.core.config import settings
from ecopromise.core.errors import register_exception_handlers
from ecopromise.core.lifespan import lifespan

# --- Router Imports ---
from ecopromise.api.endpoints.users import router as users_router
from ecopromise.api.endpoints.commitments import router as commitments_router
from ecopromise.api.endpoints.wall import router as wall_router
from ecopromise.api.endpoints.organizations import router as organizations_router
from ecopromise.api.endpoints.challenges import router as challenges_router
from ecopromise.api.endpoints.notifications import router as notifications_router
from ecopromise.api.endpoints.flags import router as flags_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

# --- MIDDLEWARE ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- ROUTER ASSEMBLY ---
api_router = APIRouter(prefix=settings.API_PREFIX)

api_router.include_router(users_router, tags=["Users"])
api_router.include_router(commitments_router, prefix="/commitments", tags=["Commitments"])
api_router.include_router(wall_router, tags=["Wall"])
api_router.include_router(organizations_router, prefix="/organizations", tags=["Organizations"])
api_router.include_router(challenges_router, prefix="/challenges", tags=["Challenges"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(flags_router, prefix="/flags", tags=["Moderation"])

app.include_router(api_router)

@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health Check"])
def health_check():
    return {"status": "ok", "version": settings.VERSION}
