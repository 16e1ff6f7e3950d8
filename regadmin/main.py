from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from regadmin.api.health import router as health_router
from regadmin.api.root import router as root_router
from regadmin.api.users import router as users_router
from regadmin.api.admins import router as admins_router
from regadmin.api.events import router as events_router
from regadmin.api.files import router as files_router
from regadmin.api.activity import router as activity_router
from regadmin.api.spheres import router as spheres_router
from regadmin.core.config import settings
from regadmin.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield


app = FastAPI(title="Registration Admin", lifespan=lifespan)

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(root_router)
app.include_router(health_router)
app.include_router(users_router)
app.include_router(admins_router)
app.include_router(events_router)
app.include_router(files_router)
app.include_router(activity_router)
app.include_router(spheres_router)
