# backend/saferoute/settings.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from saferoute.services.regions import canonicalize_region

# --- Load .env early so os.getenv works everywhere ---
load_dotenv()

log = logging.getLogger(__name__)

AWS_REGION = os.getenv("AWS_REGION", "eu-north-1")
REPORTS_TABLE = os.getenv("REPORTS_TABLE", "Reports")
USERS_TABLE = os.getenv("USERS_TABLE", "Users")
ADMINS_TABLE = os.getenv("ADMINS_TABLE", "Admins")
USERS_EMAIL_INDEX = os.getenv("USERS_EMAIL_INDEX", "email-index")
ADMINS_EMAIL_INDEX = os.getenv("ADMINS_EMAIL_INDEX", "email-index")

# 0 disables the background poller (tests, one-shot scripts)
REPORTS_POLL_SECONDS = float(os.getenv("REPORTS_POLL_SECONDS", "5"))

# Zone used for month keys and the printed date/time columns (IANA name, e.g. Asia/Manila)
TIMEZONE = os.getenv("TIMEZONE", "UTC")

# HTTP surface
API_PREFIX = os.getenv("API_PREFIX", "").strip()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
PORT = int(os.getenv("PORT", "8000"))

SUPER_ADMIN = "super_admin"
BARANGAY_ADMIN = "barangay_admin"


@dataclass(frozen=True)
class AdminSession:
    """
    The two ambient values the console trusts (role and home barangay), plus the
    display name used when a report was filed through the admin channel.
    """
    role: str = BARANGAY_ADMIN
    barangay: str = "Carig Sur"
    admin_name: str = ""

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    @property
    def acting_name(self) -> str:
        return self.admin_name or f"{self.barangay} Barangay Admin"


def session_from_env() -> AdminSession:
    role = os.getenv("ROLE", BARANGAY_ADMIN).strip() or BARANGAY_ADMIN
    if role not in (SUPER_ADMIN, BARANGAY_ADMIN):
        role = BARANGAY_ADMIN
    barangay = canonicalize_region(os.getenv("BARANGAY", "Carig Sur") or "Carig Sur")
    return AdminSession(
        role=role,
        barangay=barangay,
        admin_name=os.getenv("ADMIN_NAME", "").strip(),
    )


@lru_cache(maxsize=None)
def _zone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("unknown TIMEZONE %r, using UTC", name)
        return timezone.utc


def local_zone() -> tzinfo:
    """The operator's zone, read from TIMEZONE on every call so it can be swapped at runtime."""
    return _zone(TIMEZONE)
