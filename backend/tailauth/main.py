from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tailauth.api import auth, projects, tasks, team_members
from tailauth.core.config import settings, logger
from tailauth.core.middleware import RequestContextMiddleware, register_exception_handlers
from tailauth.db.database import create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info(f"{settings.APP_NAME} started (owner resolution: {settings.OWNER_RESOLUTION})")
    yield


app = FastAPI(
    title="tail-authz API",
    description="Team membership, account scoping and authorization for tail projects and tasks",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)

app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(team_members.router, prefix="/api/team-members", tags=["Team Members"])
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["Tasks"])


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.APP_NAME}
