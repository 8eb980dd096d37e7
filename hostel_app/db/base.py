"""SQLAlchemy Base class for all models."""
from hostel_app.models.base.base_model import Base


def import_models() -> None:
    """Import all model modules so their tables are registered on Base.metadata."""
    import hostel_app.models  # noqa: F401


__all__ = ["Base", "import_models"]
