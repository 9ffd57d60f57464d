from app.models.user import User
from app.models.token import Token
from app.models.generation import Generation

__all__ = [
    "User",
    "Token",
    "Generation",
]
