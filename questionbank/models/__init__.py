from .user import User, SessionIdentity

__all__ = ["User", "SessionIdentity"]
