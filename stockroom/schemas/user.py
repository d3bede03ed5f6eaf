from pydantic import BaseModel, Field, ConfigDict, EmailStr


class UserCreate(BaseModel):
    """Directory details supplied at sign-up."""
    username: str = Field(..., min_length=1, max_length=150)
    employee_number: str = Field(..., min_length=1, max_length=50)
    email: EmailStr


class UserResponse(BaseModel):
    id: str
    username: str
    employee_number: str
    role: str
    email: str

    model_config = ConfigDict(from_attributes=True)
