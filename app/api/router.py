from fastapi import APIRouter
from app.api import data_sets, logs, project_instances, translations

router = APIRouter()
router.include_router(logs.router, prefix="/logs", tags=["Logs"])
router.include_router(project_instances.router, prefix="/project-instances", tags=["ProjectInstances"])
router.include_router(data_sets.router, prefix="/data-sets", tags=["DataSets"])
router.include_router(translations.router, prefix="/translations", tags=["Translations"])
