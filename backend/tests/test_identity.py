"""
Tests for the reporter identity cascade:
- admin channel, cached/direct user lookups, email fallbacks, placeholders
- lookup failures degrade instead of raising
"""

import asyncio

from fakes import FakeDirectory, client_error, make_report
from saferoute.models.report import Identity
from saferoute.services.identity import (
    DEFAULT_STEPS,
    IdentityResolver,
    ResolutionContext,
    admin_by_email,
    admin_channel,
    identity_from_user,
)
from saferoute.services.identity_cache import IdentityCache


def resolve(resolver, report):
    return asyncio.run(resolver.resolve(report))


def test_admin_channel_needs_no_lookup():
    directory = FakeDirectory()
    resolver = IdentityResolver(directory, IdentityCache(), acting_admin_name="Ana Santos")
    report = make_report(reportedBy="admin", userId="u-ignored", barangay="Linao West")

    identity = resolve(resolver, report)

    assert identity == Identity(name="Ana Santos", address="Linao West Office", contact="—")
    assert directory.total_calls == 0
    assert len(resolver.cache) == 0


def test_user_found_by_id_is_cached(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    report = make_report(userId="u-juan-0001")

    first = resolve(resolver, report)
    second = resolve(resolver, report)

    assert first == second == Identity(
        name="Juan Dela Cruz", address="Purok 3, Carig Sur", contact="+639171234567"
    )
    assert directory.calls[("get_user", "u-juan-0001")] == 1
    assert "u-juan-0001" in resolver.cache


def test_name_falls_back_to_email_local_part():
    identity = identity_from_user({"email": "pedro.p@example.com", "contact": 9171112222})
    assert identity == Identity(name="pedro.p", address="—", contact="9171112222")


def test_name_prefers_name_over_username():
    identity = identity_from_user({"username": "jdc", "name": "Juan", "phoneNumber": "0917"})
    assert identity.name == "Juan"
    assert identity.contact == "0917"


def test_missing_user_recovers_through_email(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    report = make_report(userId="u-deleted-9999", createdBy="maria@example.com")

    identity = resolve(resolver, report)

    assert identity.name == "maria_s"
    # resolved by email: nothing cached under the dangling user id
    assert "u-deleted-9999" not in resolver.cache


def test_missing_user_recovers_through_admin_email(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    report = make_report(userId="u-deleted-9999", createdBy="captain@example.com", barangay="linao norte")

    identity = resolve(resolver, report)

    assert identity == Identity(name="Kap. Reyes", address="Linao Norte, Barangay Hall", contact="—")


def test_placeholder_only_after_both_email_fallbacks_fail(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    report = make_report(userId="abcdef123456", createdBy="nobody@example.com")

    identity = resolve(resolver, report)

    assert identity == Identity(name="Unknown User (abcdef12...)")
    assert directory.calls[("user_email", "nobody@example.com")] == 1
    assert directory.calls[("admin_email", "nobody@example.com")] == 1
    assert resolver.cache.get("abcdef123456") == identity


def test_placeholder_without_email(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    identity = resolve(resolver, make_report(userId="zz-missing"))
    assert identity.name == "Unknown User (zz-missi...)"
    assert identity.address == "—"


def test_email_only_report_uses_email_lookups(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    identity = resolve(resolver, make_report(createdBy="juan@example.com"))
    assert identity.name == "Juan Dela Cruz"
    assert not any(k[0] == "get_user" for k in directory.calls)


def test_admin_without_name_uses_region():
    directory = FakeDirectory(admins=[{"email": "brgy@example.com", "barangay": "carig norte"}])
    resolver = IdentityResolver(directory, IdentityCache())

    identity = resolve(resolver, make_report(createdBy="brgy@example.com", barangay=""))

    assert identity == Identity(name="Carig Norte Admin", address="Carig Norte, Barangay Hall")


def test_admin_region_unknown_when_nothing_known():
    identity = asyncio.run(
        admin_by_email(
            make_report(createdBy="x@example.com", barangay=""),
            _ctx(FakeDirectory(admins=[{"email": "x@example.com"}])),
        )
    )
    assert identity.address == "Unknown, Barangay Hall"


def test_no_linkage_gives_default_identity(directory):
    resolver = IdentityResolver(directory, IdentityCache())
    assert resolve(resolver, make_report()) == Identity()
    assert directory.total_calls == 0


def test_permission_denied_is_cached_not_raised():
    err = client_error("AccessDeniedException", "not authorized")
    directory = FakeDirectory(fail_ids={"u-locked": err})
    resolver = IdentityResolver(directory, IdentityCache())
    report = make_report(userId="u-locked", createdBy="someone@example.com")

    identity = resolve(resolver, report)
    again = resolve(resolver, report)

    assert identity == again == Identity(name="Permission Denied")
    assert directory.calls[("get_user", "u-locked")] == 1


def test_other_lookup_errors_degrade_to_sentinel():
    directory = FakeDirectory(fail_ids={"u-flaky": TimeoutError("read timed out")})
    resolver = IdentityResolver(directory, IdentityCache())
    assert resolve(resolver, make_report(userId="u-flaky")) == Identity()


def test_email_lookup_errors_fall_through():
    class BrokenEmail(FakeDirectory):
        async def find_user_by_email(self, email):
            raise ConnectionError("boom")

    directory = BrokenEmail(admins=[{"email": "kap@example.com", "name": "Kap"}])
    resolver = IdentityResolver(directory, IdentityCache())
    assert resolve(resolver, make_report(createdBy="kap@example.com")).name == "Kap"


def test_step_order_is_explicit():
    assert DEFAULT_STEPS[0] is admin_channel
    resolver = IdentityResolver(FakeDirectory(), IdentityCache(), steps=[])
    assert resolve(resolver, make_report(reportedBy="admin")) == Identity()


def _ctx(directory):
    return ResolutionContext(directory=directory, cache=IdentityCache(), acting_admin_name="")
