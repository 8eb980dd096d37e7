from hostel_app.models.user.user import User, UserProfile

__all__ = ["User", "UserProfile"]
