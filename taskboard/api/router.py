from fastapi import APIRouter

from ..routers import tasks as tasks_router
from ..routers import users as users_router


api_router = APIRouter(prefix="/api")

# Endpoints live at /api/users/* and /api/task
api_router.include_router(users_router.router)
api_router.include_router(tasks_router.router)


@api_router.get("/", tags=["meta"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "Task Board API",
        "docs": "/docs",
        "auth": {
            "register": "/api/users/register",
            "login": "/api/users/login",
            "me": "/api/users/me",
            "oauth": ["/auth/google", "/auth/github"],
        },
        "tasks": "/api/task",
    }
