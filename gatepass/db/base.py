"""Database base class and model imports."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models here for Alembic to detect them
from gatepass.db.models.society import Society, Unit  # noqa: F401, E402
from gatepass.db.models.profile import Profile, UserRole  # noqa: F401, E402
from gatepass.db.models.visitor import Visitor, VisitorLog  # noqa: F401, E402
from gatepass.db.models.auth_otp import AuthOtp  # noqa: F401, E402
from gatepass.db.models.announcement import Announcement  # noqa: F401, E402
