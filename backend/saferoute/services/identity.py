# backend/saferoute/services/identity.py
"""
Reporter identity resolution.

A report links to its reporter in up to three ways (reportedBy channel, userId,
createdBy email) written by different app versions, and they do not always agree.
The resolver walks an ordered list of steps; the first step that returns an
Identity wins. Each step is a plain async function so the order can be tested and
rearranged on its own.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from botocore.exceptions import ClientError

from saferoute.models.report import DEFAULT_IDENTITY, Identity, Report
from saferoute.services.identity_cache import IdentityCache
from saferoute.services.regions import canonicalize_region
from saferoute.services.timestamps import SENTINEL

log = logging.getLogger(__name__)

ADMIN_CHANNEL = "admin"
PERMISSION_DENIED_CODES = {"AccessDeniedException", "UnrecognizedClientException", "permission-denied"}

NAME_KEYS = ("name", "fullName", "full_name", "displayName", "username")
CONTACT_KEYS = ("phone", "contact", "phoneNumber")
ADMIN_NAME_KEYS = ("name", "fullName")


class Directory(Protocol):
    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]: ...
    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]: ...
    async def find_admin_by_email(self, email: str) -> Optional[Dict[str, Any]]: ...


@dataclass
class ResolutionContext:
    directory: Directory
    cache: IdentityCache
    acting_admin_name: str
    # set by the id lookup when the users record is missing, consumed by the placeholder step
    missing_user: bool = field(default=False)


Step = Callable[[Report, ResolutionContext], Awaitable[Optional[Identity]]]


def _first_present(record: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for k in keys:
        v = record.get(k)
        if v is not None and str(v).strip():
            return str(v)
    return None


def identity_from_user(record: Mapping[str, Any]) -> Identity:
    name = _first_present(record, NAME_KEYS)
    if name is None:
        email = _first_present(record, ("email",))
        name = email.split("@", 1)[0] if email else SENTINEL
    return Identity(
        name=name or SENTINEL,
        address=_first_present(record, ("address",)) or SENTINEL,
        contact=_first_present(record, CONTACT_KEYS) or SENTINEL,
    )


def identity_from_admin(record: Mapping[str, Any], report_region: str) -> Identity:
    region = canonicalize_region(report_region or record.get("barangay") or "Unknown")
    return Identity(
        name=_first_present(record, ADMIN_NAME_KEYS) or f"{region} Admin",
        address=f"{region}, Barangay Hall",
        contact=SENTINEL,
    )


def placeholder_identity(user_id: str) -> Identity:
    return Identity(name=f"Unknown User ({user_id[:8]}...)")


def _error_code(e: Exception) -> str:
    if isinstance(e, ClientError):
        return e.response.get("Error", {}).get("Code", "")
    return getattr(e, "code", "") or ""


# ---------------- Steps, in resolution order ----------------

async def admin_channel(report: Report, ctx: ResolutionContext) -> Optional[Identity]:
    if report.reported_by != ADMIN_CHANNEL:
        return None
    return Identity(
        name=ctx.acting_admin_name,
        address=f"{report.barangay} Office",
        contact=SENTINEL,
    )


async def cached_user(report: Report, ctx: ResolutionContext) -> Optional[Identity]:
    if not report.user_id:
        return None
    return ctx.cache.get(report.user_id)


async def user_by_id(report: Report, ctx: ResolutionContext) -> Optional[Identity]:
    user_id = report.user_id
    if not user_id:
        return None
    try:
        record = await ctx.directory.get_user(user_id)
    except Exception as e:
        log.warning("user lookup failed for %s: %s", user_id, e)
        denied = _error_code(e) in PERMISSION_DENIED_CODES
        fallback = Identity(name="Permission Denied" if denied else SENTINEL)
        ctx.cache.put(user_id, fallback)
        return fallback

    if not record:
        log.info("users record not found for userId=%s", user_id)
        ctx.missing_user = True
        return None

    identity = identity_from_user(record)
    ctx.cache.put(user_id, identity)
    return identity


async def user_by_email(report: Report, ctx: ResolutionContext) -> Optional[Identity]:
    if not report.created_by:
        return None
    try:
        record = await ctx.directory.find_user_by_email(report.created_by)
    except Exception as e:
        log.warning("user email lookup failed for %s: %s", report.created_by, e)
        return None
    return identity_from_user(record) if record else None


async def admin_by_email(report: Report, ctx: ResolutionContext) -> Optional[Identity]:
    if not report.created_by:
        return None
    try:
        record = await ctx.directory.find_admin_by_email(report.created_by)
    except Exception as e:
        log.warning("admin email lookup failed for %s: %s", report.created_by, e)
        return None
    return identity_from_admin(record, report.barangay) if record else None


async def missing_user_placeholder(report: Report, ctx: ResolutionContext) -> Optional[Identity]:
    # only cached once both email fallbacks came up empty
    if not (report.user_id and ctx.missing_user):
        return None
    identity = placeholder_identity(report.user_id)
    ctx.cache.put(report.user_id, identity)
    return identity


DEFAULT_STEPS: List[Step] = [
    admin_channel,
    cached_user,
    user_by_id,
    user_by_email,
    admin_by_email,
    missing_user_placeholder,
]


class IdentityResolver:
    def __init__(
        self,
        directory: Directory,
        cache: Optional[IdentityCache] = None,
        acting_admin_name: str = "",
        steps: Optional[Sequence[Step]] = None,
    ) -> None:
        self.directory = directory
        self.cache = cache if cache is not None else IdentityCache()
        self.acting_admin_name = acting_admin_name
        self.steps: List[Step] = list(steps) if steps is not None else list(DEFAULT_STEPS)

    async def resolve(self, report: Report) -> Identity:
        """Walk the steps until one yields an identity. Never raises for lookup failures."""
        ctx = ResolutionContext(
            directory=self.directory,
            cache=self.cache,
            acting_admin_name=self.acting_admin_name,
        )
        log.debug(
            "resolving report %s: userId=%s reportedBy=%s createdBy=%s",
            report.id, report.user_id, report.reported_by, report.created_by,
        )
        for step in self.steps:
            identity = await step(report, ctx)
            if identity is not None:
                return identity
        return DEFAULT_IDENTITY
