"""
Caller / record ownership.

"No owner" is an explicit Anonymous value rather than a bare None, so every
access check has to handle both cases.
"""

from dataclasses import dataclass
from typing import Optional, Union

from shortlink_app.exceptions import UnauthorizedError


@dataclass(frozen=True)
class Owned:
    user_id: str


@dataclass(frozen=True)
class Anonymous:
    pass


Owner = Union[Owned, Anonymous]

ANONYMOUS = Anonymous()


def owner_from(user_id: Optional[str]) -> Owner:
    """Map an optional user id (as stored or as sent by the auth layer) to an Owner"""
    if user_id is None or user_id == "":
        return ANONYMOUS
    return Owned(str(user_id))


def owner_id_of(owner: Owner) -> Optional[str]:
    """Inverse of owner_from, for storage"""
    if isinstance(owner, Owned):
        return owner.user_id
    return None


def check_access(record_owner: Owner, caller: Owner, strict_anonymous: bool = True) -> None:
    """
    Raise UnauthorizedError unless caller may access a record owned by record_owner.

    - Owned records: caller must be the same user.
    - Anonymous records: only anonymous callers, unless strict_anonymous is
      False, in which case anyone may.
    """
    if isinstance(record_owner, Owned):
        if isinstance(caller, Owned) and caller.user_id == record_owner.user_id:
            return
        raise UnauthorizedError("You don't have permission to access this URL")

    if isinstance(record_owner, Anonymous):
        if isinstance(caller, Anonymous) or not strict_anonymous:
            return
        raise UnauthorizedError("This URL is anonymous and cannot be managed by a signed-in user")

    raise TypeError(f"Unknown owner type: {type(record_owner).__name__}")
