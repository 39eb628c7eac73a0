from pydantic import BaseModel


class AuthenticatedUser(BaseModel):
    """User context passed through authentication dependencies"""

    user_id: str
    company_id: int

    class Config:
        from_attributes = True
