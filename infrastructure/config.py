import logging
import os
from datetime import timedelta
from typing import Optional

from domain.enums import OverlapPolicy

# Configuration (override through environment variables in production)
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-hotel-booking-secret")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

RESET_CODE_TTL = timedelta(minutes=int(os.getenv("RESET_CODE_TTL_MINUTES", "60")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ADMIN_EMAIL: Optional[str] = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD: Optional[str] = os.getenv("ADMIN_PASSWORD")


def get_overlap_policy() -> OverlapPolicy:
    """Boundary rule for availability checks, INCLUSIVE unless configured"""
    return OverlapPolicy(os.getenv("BOOKING_OVERLAP_POLICY", OverlapPolicy.INCLUSIVE.value).upper())


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
