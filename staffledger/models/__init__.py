from .user import User
from .salary import SalaryTransaction, SalarySetting

__all__ = ["User", "SalaryTransaction", "SalarySetting"]
