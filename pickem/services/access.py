"""
Pool lookup and permission checks shared by the domain services
"""

from pickem.errors import NotParticipant, NotPoolOwner, PoolNotFound


def load_pool(pools, pool_id):
    pool = pools.get(pool_id) if pool_id else None
    if pool is None:
        raise PoolNotFound()
    return pool


def is_admin(user):
    return bool(user and user.get("is_admin"))


def require_participant(participants, pool, user, allow_admin=True):
    """Participant row of ``user`` in ``pool``; admins pass without one"""
    membership = participants.get_membership(pool["id"], user["id"])
    if membership is None and not (allow_admin and is_admin(user)):
        raise NotParticipant()
    return membership


def require_manager(pool, user):
    """Only the pool owner or an admin may manage a pool"""
    if pool["owner_id"] != user["id"] and not is_admin(user):
        raise NotPoolOwner()
