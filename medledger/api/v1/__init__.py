"""
API v1 routes.
"""

from fastapi import APIRouter

from medledger.api.v1 import audit, records, roles

router = APIRouter()

router.include_router(records.router, prefix="/records", tags=["Records"])
router.include_router(roles.router, prefix="/roles", tags=["Roles"])
router.include_router(audit.router, prefix="/audit", tags=["Audit"])
