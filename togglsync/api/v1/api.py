from fastapi import APIRouter

from togglsync.api.v1.endpoints import audit_logs, reconcile, records, rollover, sync, tags, token

api_router = APIRouter()
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(reconcile.router, prefix="/reconcile", tags=["reconcile"])
api_router.include_router(rollover.router, prefix="/rollover", tags=["rollover"])
api_router.include_router(records.router, prefix="/records", tags=["records"])
api_router.include_router(token.router, prefix="/token", tags=["token"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])
