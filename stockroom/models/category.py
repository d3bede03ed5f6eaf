from sqlalchemy import Column, Integer, String, Text

from stockroom.database import Base


class Category(Base):
    """Product category. Products reference it by id only."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
