from fastapi import APIRouter
from app.api.v1.endpoints import (
    auth, health, users, clients, department_roles, projects
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])

# Resource endpoints
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(department_roles.router, prefix="/department-roles", tags=["department-roles"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
