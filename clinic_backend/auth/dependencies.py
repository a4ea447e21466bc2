import logging

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.database import get_db
from clinic_backend.models.profile import Profile

logger = logging.getLogger(__name__)

security = HTTPBearer()

STAFF_ROLES = ('admin', 'doctor', 'nurse', 'employee')
SCHEDULE_MANAGER_ROLES = ('admin', 'doctor', 'nurse')


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = db.query(Profile).filter(Profile.email == email.strip().lower()).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_roles(*roles: str):
    def dependency(current_user: Profile = Depends(get_current_user)) -> Profile:
        if current_user.role not in roles:
            logger.info('Rejected %s (role %s); requires one of %s', current_user.email, current_user.role, roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='You do not have permission to perform this action.',
            )
        return current_user

    return dependency


require_staff = require_roles(*STAFF_ROLES)
require_schedule_manager = require_roles(*SCHEDULE_MANAGER_ROLES)
