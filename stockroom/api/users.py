from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from stockroom.database import get_db
from stockroom.services.errors import LedgerError
from stockroom.services.identity import IdentityProvider, get_identity
from stockroom.services.user_service import UserService
from stockroom.schemas.user import UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["Users"])


def _current_user_id(identity: IdentityProvider) -> str:
    try:
        return identity.current_user()
    except LedgerError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register the current identity",
    description="""
    Second step of sign-up: once the identity service has created the account,
    register it in the user directory so it can record movements.
    New users get the 'employee' role.
    """
)
def provision_user(
    user_data: UserCreate,
    identity: IdentityProvider = Depends(get_identity),
    db: Session = Depends(get_db)
):
    user_id = _current_user_id(identity)
    service = UserService(db)

    try:
        return service.provision(user_id, user_data)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user",
    description="Directory record of the authenticated identity."
)
def get_current_user(
    identity: IdentityProvider = Depends(get_identity),
    db: Session = Depends(get_db)
):
    user_id = _current_user_id(identity)
    service = UserService(db)

    try:
        return service.get(user_id)
    except LedgerError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
