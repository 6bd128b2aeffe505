from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import decode_jwt
from app.db.session import get_db
from app.services.authorization import AuthorizationService
from app.services.data_sets import DataSetsQueryService
from app.services.logs import LogsQueryService
from app.services.project_instances import ProjectInstancesQueryService
from app.services.translations import TranslationsQueryService

bearer = HTTPBearer(auto_error=False)

def get_current_admin(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    if not creds:
        raise HTTPException(status_code=401, detail="Missing authorization token")
    try:
        return decode_jwt(creds.credentials, settings.ADMIN_JWT_SECRET)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid token")

def get_authorization(db: Session = Depends(get_db), admin: dict = Depends(get_current_admin)) -> AuthorizationService:
    return AuthorizationService(db, admin)

def get_logs_service(db: Session = Depends(get_db), authz: AuthorizationService = Depends(get_authorization)) -> LogsQueryService:
    return LogsQueryService(db, authorization=authz)

def get_project_instances_service(
    db: Session = Depends(get_db), authz: AuthorizationService = Depends(get_authorization)
) -> ProjectInstancesQueryService:
    return ProjectInstancesQueryService(db, authorization=authz)

def get_data_sets_service(db: Session = Depends(get_db), authz: AuthorizationService = Depends(get_authorization)) -> DataSetsQueryService:
    return DataSetsQueryService(db, authorization=authz)

def get_translations_service(
    db: Session = Depends(get_db), authz: AuthorizationService = Depends(get_authorization)
) -> TranslationsQueryService:
    return TranslationsQueryService(db, authorization=authz)

def actor_of(admin: dict) -> str:
    return str(admin.get("email") or admin.get("sub") or "").strip() or "System"
