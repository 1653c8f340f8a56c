from models.application import LoanApplicationRow
from models.user import UserRow

__all__ = [
    "LoanApplicationRow",
    "UserRow",
]
