from fastapi import APIRouter

from medbox.api.endpoints import auth, boxes, users, audit_logs

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(boxes.router, prefix="/boxes", tags=["boxes"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
