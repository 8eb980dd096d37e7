from hostel_app.repositories.user.user_repository import UserProfileRepository, UserRepository

__all__ = ["UserProfileRepository", "UserRepository"]
