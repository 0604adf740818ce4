"""
Pools and their participants
"""

import logging
import secrets

from pickem.errors import (
    CannotRemoveOwner,
    DuplicateParticipant,
    DuplicateRecord,
    NoCurrentSeason,
    ParticipantNotFound,
    PoolNotFound,
    SeasonNotFound,
    ValidationError,
)
from pickem.services.access import (
    is_admin,
    load_pool,
    require_manager,
    require_participant,
)
from pickem.services.user_service import normalize_email

logger = logging.getLogger(__name__)

MODES = ("weekly", "survivor")
SLUG_ATTEMPTS = 5


def generate_slug():
    return secrets.token_urlsafe(8)


class PoolService:
    def __init__(self, repositories, invitations):
        self.pools = repositories.pools
        self.participants = repositories.participants
        self.picks = repositories.picks
        self.standings = repositories.standings
        self.seasons = repositories.seasons
        self.users = repositories.users
        self.invitations = invitations

    def _validate_mode(self, mode):
        if mode not in MODES:
            raise ValidationError(f"Pool mode must be one of: {', '.join(MODES)}")
        return mode

    def create_pool(self, owner, name, mode="weekly", season_id=None):
        """
        Create a pool owned by ``owner`` and add the owner as its first
        participant. Without ``season_id`` the current season is used.
        """
        name = str(name or "").strip()
        if not name:
            raise ValidationError("Pool name is required")
        self._validate_mode(mode)

        if season_id:
            if self.seasons.get(season_id) is None:
                raise SeasonNotFound()
        else:
            season_id = self.seasons.get_current_id()
            if not season_id:
                raise NoCurrentSeason()

        pool = None
        for _ in range(SLUG_ATTEMPTS):
            try:
                pool = self.pools.create(
                    {
                        "name": name,
                        "mode": mode,
                        "owner_id": owner["id"],
                        "season_id": season_id,
                        "slug": generate_slug(),
                    }
                )
                break
            except DuplicateRecord:
                logger.warning("Pool slug collision, retrying")
        if pool is None:
            raise ValidationError("Could not allocate a pool slug, please retry")

        self.participants.create({"pool_id": pool["id"], "user_id": owner["id"], "role": "owner"})
        logger.info(f"{owner['email']} created {mode} pool '{name}' ({pool['id']})")
        return pool

    def get_pool(self, pool_id, user=None):
        """Pool record; with ``user`` given, only for its participants or admins"""
        pool = load_pool(self.pools, pool_id)
        if user is not None:
            require_participant(self.participants, pool, user)
        return pool

    def get_pool_by_slug(self, slug):
        pool = self.pools.get_by_slug(slug)
        if pool is None:
            raise PoolNotFound()
        return pool

    def list_pools_for_user(self, user):
        """Pools ``user`` takes part in, with their role"""
        memberships = self.participants.list(user_id=user["id"])
        if not memberships:
            return []

        roles = {m["pool_id"]: m["role"] for m in memberships}
        pools = self.pools.list(id=list(roles))
        return [dict(pool, role=roles[pool["id"]]) for pool in pools]

    def update_pool(self, pool_id, user, changes):
        pool = load_pool(self.pools, pool_id)
        require_manager(pool, user)

        updates = {}
        if "name" in changes:
            name = str(changes["name"] or "").strip()
            if not name:
                raise ValidationError("Pool name is required")
            updates["name"] = name
        if "mode" in changes:
            updates["mode"] = self._validate_mode(changes["mode"])
        if "is_active" in changes:
            updates["is_active"] = bool(changes["is_active"])

        if not updates:
            return pool
        return self.pools.update(pool_id, updates)

    def delete_pool(self, pool_id, user):
        """Delete a pool with its picks, standings, invitations and participants"""
        pool = load_pool(self.pools, pool_id)
        require_manager(pool, user)

        picks = self.picks.delete_where(pool_id=pool_id)
        self.standings.delete_where(pool_id=pool_id)
        self.invitations.delete_for_pool(pool_id)
        self.participants.delete_where(pool_id=pool_id)
        self.pools.delete(pool_id)
        logger.info(f"Deleted pool {pool_id} with {picks} picks")

    def list_participants(self, pool_id, user):
        pool = self.get_pool(pool_id, user)
        participants = self.participants.list(pool_id=pool["id"])
        users = {
            u["id"]: u for u in self.users.list(id=[p["user_id"] for p in participants])
        } if participants else {}

        rows = []
        for participant in participants:
            member = users.get(participant["user_id"]) or {}
            rows.append(
                {
                    "user_id": participant["user_id"],
                    "role": participant["role"],
                    "first_name": member.get("first_name"),
                    "last_name": member.get("last_name"),
                    "email": member.get("email"),
                    "joined_at": participant["created_at"],
                }
            )
        return rows

    def add_player(self, pool_id, acting_user, email):
        """
        Add a player by email.

        A registered user is added directly; anyone else gets a pending
        invitation.

        Returns:
            dict: ``{"status": "added", "participant": ...}`` or
            ``{"status": "invited", "invitation": ...}``
        """
        pool = load_pool(self.pools, pool_id)
        require_manager(pool, acting_user)
        email = normalize_email(email)

        user = self.users.get_by_email(email)
        if user is None:
            invitation = self.invitations.create_invitation(pool, email, acting_user)
            return {"status": "invited", "invitation": invitation}

        if self.participants.get_membership(pool_id, user["id"]):
            raise DuplicateParticipant()
        try:
            participant = self.participants.create(
                {"pool_id": pool_id, "user_id": user["id"], "role": "player"}
            )
        except DuplicateRecord:
            raise DuplicateParticipant()

        logger.info(f"Added {email} to pool {pool_id}")
        return {"status": "added", "participant": participant}

    def remove_player(self, pool_id, acting_user, user_id):
        """Remove a participant and their picks; players may also leave on their own"""
        pool = load_pool(self.pools, pool_id)
        if acting_user["id"] != user_id:
            require_manager(pool, acting_user)

        membership = self.participants.get_membership(pool_id, user_id)
        if membership is None:
            raise ParticipantNotFound()
        if membership["role"] == "owner" or pool["owner_id"] == user_id:
            raise CannotRemoveOwner()

        self.participants.delete(membership["id"])
        removed = self.picks.delete_where(pool_id=pool_id, user_id=user_id)
        self.standings.delete_where(pool_id=pool_id, user_id=user_id)
        logger.info(f"Removed user {user_id} from pool {pool_id} ({removed} picks)")

    def list_invitations(self, pool_id, user):
        pool = load_pool(self.pools, pool_id)
        require_manager(pool, user)
        return self.invitations.list_for_pool(pool_id)

    def cancel_invitation(self, pool_id, invitation_id, user):
        pool = load_pool(self.pools, pool_id)
        require_manager(pool, user)
        self.invitations.cancel(pool_id, invitation_id)

    def can_manage(self, pool, user):
        return pool["owner_id"] == user["id"] or is_admin(user)
