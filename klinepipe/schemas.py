"""Response models shared by the HTTP routers."""
from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Standard response model."""
    message: str
