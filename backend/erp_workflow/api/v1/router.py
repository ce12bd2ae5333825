from fastapi import APIRouter

from erp_workflow.api.v1 import approvals, documents, sla, workflows

api_router = APIRouter()

api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(sla.router, prefix="/sla", tags=["sla"])
api_router.include_router(approvals.router, prefix="/approvals", tags=["approvals"])
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
