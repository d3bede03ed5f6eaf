from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging

from stockroom.models.user import User
from stockroom.schemas.user import UserCreate
from stockroom.services.errors import UnknownUserError, ValidationFailedError

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "employee"


class UserService:
    """User directory: the second step of sign-up, after the identity service has created the account."""

    def __init__(self, db: Session):
        self.db = db

    def provision(self, user_id: str, user_data: UserCreate) -> User:
        """
        Register an authenticated identity in the user directory.

        Raises:
            ValidationFailedError: The identity is already registered
        """
        if self.db.get(User, user_id) is not None:
            raise ValidationFailedError(f"User {user_id} is already registered", status_code=409)

        user = User(
            id=user_id,
            username=user_data.username,
            employee_number=user_data.employee_number,
            email=user_data.email,
            role=DEFAULT_ROLE,
        )
        try:
            self.db.add(user)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValidationFailedError(f"User {user_id} is already registered", status_code=409)

        self.db.refresh(user)
        logger.info(f"User {user_id} ({user.username}) provisioned")
        return user

    def get(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise UnknownUserError(user_id)
        return user
