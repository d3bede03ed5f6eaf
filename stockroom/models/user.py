from sqlalchemy import Column, String

from stockroom.database import Base


class User(Base):
    """
    Directory entry for an identity issued by the external identity service.

    The `id` is the identity's subject, so a row here is what makes an
    authenticated identity usable as a movement's author.
    """
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    username = Column(String(150), nullable=False)
    employee_number = Column(String(50), nullable=False)
    role = Column(String(50), nullable=False, default="employee")
    email = Column(String(255), nullable=False, index=True)

    def __repr__(self):
        return f"<User(id='{self.id}', username='{self.username}')>"
