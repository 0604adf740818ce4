"""
Pool invitations for people who do not have an account yet
"""

import logging
import secrets
from datetime import timedelta

from pickem.errors import (
    AccessDenied,
    DuplicateInvitation,
    DuplicateParticipant,
    DuplicateRecord,
    InvitationNotFound,
)
from pickem.utils.timezone_utils import get_utc_time

logger = logging.getLogger(__name__)

PENDING = "pending"
ACCEPTED = "accepted"
CANCELLED = "cancelled"


def generate_invite_token():
    """64 hex characters"""
    return secrets.token_hex(32)


class InvitationService:
    def __init__(self, repositories, expiry_hours=168):
        self.invitations = repositories.invitations
        self.participants = repositories.participants
        self.pools = repositories.pools
        self.users = repositories.users
        self.expiry_hours = expiry_hours

    def _is_open(self, invitation, now=None):
        now = now or get_utc_time()
        return invitation["status"] == PENDING and invitation["expires_at"] > now

    def create_invitation(self, pool, email, inviter):
        """Pending invitation for ``email``; one open invitation per pool and email"""
        existing = self.invitations.list(pool_id=pool["id"], email=email, status=PENDING)
        if any(self._is_open(invitation) for invitation in existing):
            raise DuplicateInvitation()

        invitation = self.invitations.create(
            {
                "pool_id": pool["id"],
                "email": email,
                "inviter_id": inviter["id"],
                "token": generate_invite_token(),
                "status": PENDING,
                "expires_at": get_utc_time() + timedelta(hours=self.expiry_hours),
            }
        )
        logger.info(f"Invited {email} to pool {pool['id']}")
        return invitation

    def list_for_pool(self, pool_id):
        """Open invitations of a pool with the inviter's name"""
        invitations = [i for i in self.invitations.list(pool_id=pool_id) if self._is_open(i)]
        inviters = {
            user["id"]: user
            for user in self.users.list(id=list({i["inviter_id"] for i in invitations}))
        } if invitations else {}

        rows = []
        for invitation in invitations:
            inviter = inviters.get(invitation["inviter_id"]) or {}
            row = {key: value for key, value in invitation.items() if key != "token"}
            row["inviter_first_name"] = inviter.get("first_name")
            row["inviter_last_name"] = inviter.get("last_name")
            rows.append(row)
        return rows

    def cancel(self, pool_id, invitation_id):
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation["pool_id"] != pool_id:
            raise InvitationNotFound()

        self.invitations.update(invitation_id, {"status": CANCELLED})
        logger.info(f"Cancelled invitation {invitation_id} for pool {pool_id}")

    def get_valid(self, token, email=None):
        """Pending, unexpired invitation for ``token`` (and ``email`` when given)"""
        invitation = self.invitations.get_by_token(token) if token else None
        if invitation is None or not self._is_open(invitation):
            raise InvitationNotFound("Invalid or expired invitation token")
        if email is not None and invitation["email"] != email:
            raise InvitationNotFound("Invalid or expired invitation token")
        return invitation

    def accept(self, token, user):
        """Add ``user`` to the invited pool and mark the invitation accepted"""
        invitation = self.get_valid(token)
        if invitation["email"] != user["email"]:
            raise AccessDenied("This invitation was sent to a different email address")

        pool = self.pools.get(invitation["pool_id"])
        if pool is None:
            raise InvitationNotFound("The invited pool no longer exists")

        try:
            participant = self.participants.create(
                {"pool_id": pool["id"], "user_id": user["id"], "role": "player"}
            )
        except DuplicateRecord:
            raise DuplicateParticipant()

        self.invitations.update(invitation["id"], {"status": ACCEPTED})
        logger.info(f"{user['email']} accepted invitation to pool {pool['id']}")
        return pool, participant

    def delete_for_pool(self, pool_id):
        return self.invitations.delete_where(pool_id=pool_id)
