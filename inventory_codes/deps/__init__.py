from .auth import AuthContext, require_api_or_jwt

__all__ = ["AuthContext", "require_api_or_jwt"]
