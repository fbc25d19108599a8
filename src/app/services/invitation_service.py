"""
Invitation Service

Token-based onboarding: an admin proposes email + role, the invitee redeems
the single-use token and becomes an active user of the tenant.

State machine:
    pending -> accepted   (accept_invitation)
    pending -> expired    (detected lazily on verify/accept/invite)
    pending -> revoked    (revoke_invitation)
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from src.app.repositories.errors import DuplicateEntryError
from src.app.services.collaborators import InvitationNotifier
from src.app.services.unit_of_work import UnitOfWork
from src.domain.context import TenantContext
from src.domain.entities import Invitation, InvitationStatus, User
from src.domain.errors import (
    ConcurrentModificationError,
    ConflictError,
    ExpiredError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from src.domain.policy import Capability, PolicyEngine
from src.domain.result import Result, Return

from .base import AdminComponent, Clock, hash_password, normalize_email
from .dtos import (
    Credentials,
    InvitationDetails,
    InvitationView,
    InviteUserCommand,
    IssuedInvitation,
    UserView,
)

logger = logging.getLogger(__name__)


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class InvitationService(AdminComponent):
    """
    Business Rules:
    - Only admins invite, and only to roles strictly below their own
    - One pending invitation per email and tenant; emails already used by a
      tenant user cannot be invited
    - Tokens are single-use and expire after ttl_days
    - Expired and unknown/consumed tokens are reported with the same message
    """

    def __init__(
        self,
        uow: UnitOfWork,
        notifier: InvitationNotifier,
        policy: Optional[PolicyEngine] = None,
        clock: Optional[Clock] = None,
        ttl_days: int = 7,
        bcrypt_rounds: int = 12,
        min_password_length: int = 8,
    ):
        super().__init__(uow, policy, clock)
        self.notifier = notifier
        self.ttl = timedelta(days=ttl_days)
        self.bcrypt_rounds = bcrypt_rounds
        self.min_password_length = min_password_length

    async def invite_user(
        self, actor: TenantContext, command: InviteUserCommand
    ) -> Result[IssuedInvitation]:
        """
        Issue a single-use token inviting an email to the tenant with a role.

        The notifier is called only after the invitation is committed.

        Args:
            actor: Authenticated caller (admin or above)
            command: Email, optional full name and the proposed role

        Returns:
            Result with the invitation and its plain token, or Error
            (USER_EXISTS, INVITATION_PENDING, ROLE_ESCALATION, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("invite_user", refreshed)
            actor = refreshed.value

            decision = self.policy.can_invite_user(actor, actor.tenant_id, command.proposed_role)
            if decision.is_err():
                return self._denied("invite_user", decision)

            email = normalize_email(command.email)
            if not email:
                return Return.err(ValidationError("Email is required", code="INVALID_EMAIL"))

            if await self.uow.users.get_by_tenant_and_email(actor.tenant_id, email):
                return Return.err(
                    ConflictError("A user with this email already exists", code="USER_EXISTS")
                )

            now = self.clock()
            pending = await self.uow.invitations.get_pending_by_tenant_and_email(
                actor.tenant_id, email
            )
            if pending is not None and not pending.is_expired(now):
                return Return.err(
                    ConflictError(
                        "A pending invitation already exists for this email",
                        code="INVITATION_PENDING",
                    )
                )

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            if pending is not None:
                await self.uow.invitations.transition(
                    pending.id, InvitationStatus.pending, InvitationStatus.expired
                )

            token = generate_token()
            try:
                invitation = await self.uow.invitations.create(
                    Invitation(
                        tenant_id=actor.tenant_id,
                        email=email,
                        full_name=command.full_name,
                        proposed_role=command.proposed_role,
                        invited_by=actor.user_id,
                        token_hash=hash_token(token),
                        expires_at=now + self.ttl,
                    )
                )
            except DuplicateEntryError:
                return Return.err(
                    ConflictError(
                        "A pending invitation already exists for this email",
                        code="INVITATION_PENDING",
                    )
                )

            await self._audit(
                actor,
                "invitation_sent",
                invitation_id=invitation.id,
                email=email,
                proposed_role=invitation.proposed_role,
            )
            await self.uow.commit()

            logger.info(f"Invitation {invitation.id} created in tenant {actor.tenant_id}")

        await self.notifier.send_invitation(email, token, invitation.expires_at)

        return Return.ok(
            IssuedInvitation(invitation=InvitationView.model_validate(invitation), token=token)
        )

    async def _pending_invitation(self, token: str) -> Result[Invitation]:
        """
        Resolve a token to a redeemable invitation. Must run inside an open
        unit of work; commits when it flips a stale invitation to expired.
        """
        invitation = await self.uow.invitations.get_by_token_hash(hash_token(token))
        if invitation is None:
            return Return.err(InvalidTokenError())

        if invitation.status == InvitationStatus.expired:
            return Return.err(ExpiredError())
        if invitation.status != InvitationStatus.pending:
            return Return.err(InvalidTokenError())

        if invitation.is_expired(self.clock()):
            if await self.uow.invitations.transition(
                invitation.id, InvitationStatus.pending, InvitationStatus.expired
            ):
                await self.uow.commit()
                logger.info(f"Invitation {invitation.id} expired")
            return Return.err(ExpiredError())

        return Return.ok(invitation)

    async def verify_token(self, token: str) -> Result[InvitationDetails]:
        """Public lookup of what a token invites to. Flips a stale pending invitation to expired."""
        async with self.uow:
            resolved = await self._pending_invitation(token)
            if resolved.is_err():
                return self._denied("verify_token", resolved)
            invitation = resolved.value

            tenant = await self.uow.tenants.get_by_id(invitation.tenant_id)
            if tenant is None:
                return Return.err(InvalidTokenError())

            return Return.ok(
                InvitationDetails(
                    email=invitation.email,
                    full_name=invitation.full_name,
                    proposed_role=invitation.proposed_role,
                    tenant_name=tenant.name,
                    expires_at=invitation.expires_at,
                )
            )

    async def accept_invitation(self, token: str, credentials: Credentials) -> Result[UserView]:
        """
        Redeem a token. The pending -> accepted flip is a compare-and-set
        executed before the user insert, so of two concurrent accepts only
        one can proceed; the other gets InvalidTokenError.
        """
        async with self.uow:
            resolved = await self._pending_invitation(token)
            if resolved.is_err():
                return self._denied("accept_invitation", resolved)
            invitation = resolved.value

            if len(credentials.password) < self.min_password_length:
                return Return.err(
                    ValidationError(
                        f"Password must be at least {self.min_password_length} characters long",
                        code="INVALID_PASSWORD",
                    )
                )

            if await self.uow.users.get_by_tenant_and_email(
                invitation.tenant_id, invitation.email
            ):
                return Return.err(
                    ConflictError("A user with this email already exists", code="USER_EXISTS")
                )

            now = self.clock()
            if not await self.uow.invitations.transition(
                invitation.id,
                InvitationStatus.pending,
                InvitationStatus.accepted,
                {"accepted_at": now},
            ):
                return self._denied("accept_invitation", Return.err(InvalidTokenError()))

            full_name = (credentials.full_name or invitation.full_name or "").strip()
            try:
                user = await self.uow.users.create(
                    User(
                        tenant_id=invitation.tenant_id,
                        email=invitation.email,
                        full_name=full_name,
                        password_hash=hash_password(credentials.password, self.bcrypt_rounds),
                        global_role=invitation.proposed_role,
                    )
                )
            except DuplicateEntryError:
                return Return.err(
                    ConflictError("A user with this email already exists", code="USER_EXISTS")
                )

            await self._audit(
                TenantContext(
                    tenant_id=user.tenant_id, user_id=user.id, global_role=user.global_role
                ),
                "invitation_accepted",
                invitation_id=invitation.id,
                role=user.global_role,
            )
            await self.uow.commit()

            logger.info(f"Invitation {invitation.id} accepted, user {user.id} activated")
            return Return.ok(UserView.model_validate(user))

    async def _load_invitation(
        self, actor: TenantContext, invitation_id: UUID
    ) -> Result[Invitation]:
        invitation = await self.uow.invitations.get_by_id(invitation_id)
        if invitation is None:
            return Return.err(
                NotFoundError("Invitation not found", code="INVITATION_NOT_FOUND")
            )
        isolation = self.policy.check_tenant(actor, invitation.tenant_id)
        if isolation.is_err():
            return isolation
        return Return.ok(invitation)

    async def revoke_invitation(
        self, actor: TenantContext, invitation_id: UUID
    ) -> Result[InvitationView]:
        """
        Withdraw a pending invitation. Revoking a revoked invitation is a no-op.

        Args:
            actor: Authenticated caller (admin or above)
            invitation_id: Invitation of the actor's tenant

        Returns:
            Result with the invitation as revoked, or Error (INVITATION_NOT_PENDING, ...)
        """
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("revoke_invitation", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_invitations)
            if admitted.is_err():
                return self._denied("revoke_invitation", admitted)

            loaded = await self._load_invitation(actor, invitation_id)
            if loaded.is_err():
                return self._denied("revoke_invitation", loaded)
            invitation = loaded.value

            decision = self.policy.decide(
                actor, Capability.manage_invitations, invitation.tenant_id
            )
            if decision.is_err():
                return self._denied("revoke_invitation", decision)

            view = InvitationView.model_validate(invitation)
            if invitation.status == InvitationStatus.revoked:
                return Return.ok(view)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            if invitation.status != InvitationStatus.pending or not await self.uow.invitations.transition(
                invitation.id, InvitationStatus.pending, InvitationStatus.revoked
            ):
                return Return.err(
                    ConflictError(
                        "Only pending invitations can be revoked", code="INVITATION_NOT_PENDING"
                    )
                )

            await self._audit(
                actor, "invitation_revoked", invitation_id=invitation.id, email=invitation.email
            )
            await self.uow.commit()

            logger.info(f"Invitation {invitation.id} revoked")
            return Return.ok(view.model_copy(update={"status": InvitationStatus.revoked}))

    async def resend_invitation(
        self, actor: TenantContext, invitation_id: UUID
    ) -> Result[IssuedInvitation]:
        """Issue a fresh token and expiry for a pending invitation; the old token stops working."""
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("resend_invitation", refreshed)
            actor = refreshed.value

            admitted = self.policy.admit(actor, Capability.manage_invitations)
            if admitted.is_err():
                return self._denied("resend_invitation", admitted)

            loaded = await self._load_invitation(actor, invitation_id)
            if loaded.is_err():
                return self._denied("resend_invitation", loaded)
            invitation = loaded.value

            decision = self.policy.decide(
                actor, Capability.manage_invitations, invitation.tenant_id
            )
            if decision.is_err():
                return self._denied("resend_invitation", decision)

            if not await self._unchanged(actor):
                return Return.err(ConcurrentModificationError())

            token = generate_token()
            expires_at = self.clock() + self.ttl
            if invitation.status != InvitationStatus.pending or not await self.uow.invitations.transition(
                invitation.id,
                InvitationStatus.pending,
                InvitationStatus.pending,
                {"token_hash": hash_token(token), "expires_at": expires_at},
            ):
                return Return.err(
                    ConflictError(
                        "Only pending invitations can be resent", code="INVITATION_NOT_PENDING"
                    )
                )

            await self._audit(
                actor, "invitation_resent", invitation_id=invitation.id, email=invitation.email
            )
            await self.uow.commit()

            logger.info(f"Invitation {invitation.id} resent")

        await self.notifier.send_invitation(invitation.email, token, expires_at)

        view = InvitationView.model_validate(invitation).model_copy(
            update={"expires_at": expires_at}
        )
        return Return.ok(IssuedInvitation(invitation=view, token=token))

    async def get_invitations(self, actor: TenantContext) -> Result[List[InvitationView]]:
        async with self.uow:
            refreshed = await self._refresh_actor(actor)
            if refreshed.is_err():
                return self._denied("get_invitations", refreshed)
            actor = refreshed.value

            decision = self.policy.decide(actor, Capability.manage_invitations, actor.tenant_id)
            if decision.is_err():
                return self._denied("get_invitations", decision)

            now = self.clock()
            views = []
            for invitation in await self.uow.invitations.list_by_tenant(actor.tenant_id):
                view = InvitationView.model_validate(invitation)
                # Stale pending rows are reported as expired without a write
                if invitation.status == InvitationStatus.pending and invitation.is_expired(now):
                    view = view.model_copy(update={"status": InvitationStatus.expired})
                views.append(view)
            return Return.ok(views)
