from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import select

from src.app.services.dtos import Credentials, InviteUserCommand
from src.app.services.invitation_service import hash_token
from src.domain.base import utcnow
from src.domain.context import TenantContext
from src.domain.entities import AuditEvent, GlobalRole, Invitation, InvitationStatus, User
from src.domain.errors import (
    AuthorizationError,
    ConflictError,
    ExpiredError,
    InvalidTokenError,
    TenantIsolationError,
    ValidationError,
)


async def _invite(service, seeded, email="bob@x.com", role=GlobalRole.employee, actor="acme_admin"):
    result = await service.invite_user(
        seeded.actor(actor), InviteUserCommand(email=email, proposed_role=role)
    )
    assert result.is_ok(), result
    return result.value


@pytest.mark.asyncio
async def test_invite_creates_pending_invitation(service, seeded, notifier, db_session):
    before = utcnow()
    issued = await _invite(service, seeded)

    assert issued.invitation.status == InvitationStatus.pending
    assert issued.invitation.proposed_role == GlobalRole.employee
    assert timedelta(days=6, hours=23) < issued.invitation.expires_at - before <= timedelta(days=7, seconds=5)

    assert notifier.sent == [("bob@x.com", issued.token, issued.invitation.expires_at)]

    stored = await db_session.get(Invitation, issued.invitation.id)
    assert stored.token_hash == hash_token(issued.token)
    assert issued.token not in stored.token_hash


@pytest.mark.asyncio
@pytest.mark.parametrize("actor_key", ["acme_manager", "acme_employee"])
async def test_below_admin_cannot_invite(service, seeded, actor_key):
    result = await service.invite_user(
        seeded.actor(actor_key), InviteUserCommand(email="carol@x.com")
    )

    assert isinstance(result.error, AuthorizationError)


@pytest.mark.asyncio
async def test_invite_role_must_be_below_inviter(service, seeded):
    result = await service.invite_user(
        seeded.actor("acme_admin"),
        InviteUserCommand(email="carol@x.com", proposed_role=GlobalRole.admin),
    )

    assert isinstance(result.error, ValidationError)


@pytest.mark.asyncio
async def test_duplicate_pending_invitation_conflicts(service, seeded):
    await _invite(service, seeded)

    result = await service.invite_user(
        seeded.actor("acme_admin"), InviteUserCommand(email="BOB@x.com")
    )

    assert isinstance(result.error, ConflictError)
    assert result.error.code == "INVITATION_PENDING"


@pytest.mark.asyncio
async def test_inviting_existing_user_conflicts(service, seeded):
    result = await service.invite_user(
        seeded.actor("acme_admin"), InviteUserCommand(email="employee@acme.com")
    )

    assert result.error.code == "USER_EXISTS"


@pytest.mark.asyncio
async def test_accept_creates_user_once(service, seeded, db_session):
    """Invite, accept, then the new employee tries to invite"""
    issued = await _invite(service, seeded)

    details = await service.verify_token(issued.token)
    accepted = await service.accept_invitation(
        issued.token, Credentials(password="correct-horse", full_name="Bob Builder")
    )
    replay = await service.accept_invitation(issued.token, Credentials(password="correct-horse"))

    assert details.value.tenant_name == "Acme Corp"
    assert accepted.value.email == "bob@x.com"
    assert accepted.value.global_role == GlobalRole.employee
    assert accepted.value.full_name == "Bob Builder"
    assert isinstance(replay.error, InvalidTokenError)

    stored = await db_session.get(Invitation, issued.invitation.id)
    assert stored.status == InvitationStatus.accepted
    assert stored.accepted_at is not None

    events = (
        await db_session.exec(
            select(AuditEvent).where(AuditEvent.action == "invitation_accepted")
        )
    ).all()
    assert [e.actor_id for e in events] == [accepted.value.id]

    bob = await db_session.get(User, accepted.value.id)
    bob_actor = TenantContext(
        tenant_id=bob.tenant_id, user_id=bob.id, global_role=bob.global_role
    )
    denied = await service.invite_user(bob_actor, InviteUserCommand(email="dan@x.com"))
    assert isinstance(denied.error, AuthorizationError)


@pytest.mark.asyncio
async def test_unknown_token_is_invalid(service, seeded):
    result = await service.verify_token("not-a-real-token")

    assert isinstance(result.error, InvalidTokenError)


@pytest.mark.asyncio
async def test_expired_token_is_flipped_to_expired(make_service, seeded, db_session):
    start = utcnow()
    issued = await _invite(make_service(clock=lambda: start), seeded)

    later = make_service(clock=lambda: start + timedelta(days=8))
    verified = await later.verify_token(issued.token)
    accepted = await later.accept_invitation(issued.token, Credentials(password="password123"))

    assert isinstance(verified.error, ExpiredError)
    assert isinstance(accepted.error, ExpiredError)
    assert verified.error.message == InvalidTokenError().message

    stored = await db_session.get(Invitation, issued.invitation.id)
    assert stored.status == InvitationStatus.expired


@pytest.mark.asyncio
async def test_stale_pending_invitation_does_not_block_new_one(make_service, seeded, db_session):
    start = utcnow()
    first = await _invite(make_service(clock=lambda: start), seeded)

    later = make_service(clock=lambda: start + timedelta(days=8))
    second = await _invite(later, seeded)

    assert second.invitation.id != first.invitation.id
    stale = await db_session.get(Invitation, first.invitation.id)
    assert stale.status == InvitationStatus.expired


@pytest.mark.asyncio
async def test_accept_rejects_short_password(service, seeded, db_session):
    issued = await _invite(service, seeded)

    result = await service.accept_invitation(issued.token, Credentials(password="short"))

    assert isinstance(result.error, ValidationError)
    stored = await db_session.get(Invitation, issued.invitation.id)
    assert stored.status == InvitationStatus.pending


@pytest.mark.asyncio
async def test_revoke_invitation(service, seeded):
    admin = seeded.actor("acme_admin")
    issued = await _invite(service, seeded)

    revoked = await service.revoke_invitation(admin, issued.invitation.id)
    again = await service.revoke_invitation(admin, issued.invitation.id)
    accepted = await service.accept_invitation(issued.token, Credentials(password="password123"))

    assert revoked.value.status == InvitationStatus.revoked
    assert again.is_ok()
    assert isinstance(accepted.error, InvalidTokenError)


@pytest.mark.asyncio
async def test_revoke_accepted_invitation_conflicts(service, seeded):
    issued = await _invite(service, seeded)
    await service.accept_invitation(issued.token, Credentials(password="password123"))

    result = await service.revoke_invitation(seeded.actor("acme_admin"), issued.invitation.id)

    assert isinstance(result.error, ConflictError)


@pytest.mark.asyncio
async def test_resend_rotates_token(service, seeded, notifier):
    issued = await _invite(service, seeded)

    resent = await service.resend_invitation(seeded.actor("acme_admin"), issued.invitation.id)
    old_token = await service.verify_token(issued.token)
    new_token = await service.verify_token(resent.value.token)

    assert resent.value.token != issued.token
    assert len(notifier.sent) == 2
    assert isinstance(old_token.error, InvalidTokenError)
    assert new_token.value.email == "bob@x.com"


@pytest.mark.asyncio
async def test_get_invitations_reports_stale_as_expired(make_service, seeded):
    start = utcnow()
    await _invite(make_service(clock=lambda: start), seeded)

    later = make_service(clock=lambda: start + timedelta(days=8))
    result = await later.get_invitations(seeded.actor("acme_admin"))

    assert [i.status for i in result.value] == [InvitationStatus.expired]


@pytest.mark.asyncio
async def test_other_tenant_cannot_revoke(service, seeded):
    issued = await _invite(service, seeded)

    result = await service.revoke_invitation(seeded.actor("globex_admin"), issued.invitation.id)

    assert isinstance(result.error, TenantIsolationError)


@pytest.mark.asyncio
async def test_manager_cannot_tell_invitation_ids_apart(service, seeded):
    issued = (
        await service.invite_user(seeded.actor("acme_admin"), InviteUserCommand(email="bob@x.com"))
    ).value
    manager = seeded.actor("acme_manager")

    existing = await service.revoke_invitation(manager, issued.invitation.id)
    missing = await service.resend_invitation(manager, uuid4())

    assert isinstance(existing.error, AuthorizationError)
    assert isinstance(missing.error, AuthorizationError)
