"""
Field-by-field rules for combining two accounts into one.

merge_accounts(primary, secondary) is pure: it reads both accounts and builds
a new, unsaved Account. The rule table:

| Field(s)                                       | Rule                                           |
|------------------------------------------------|------------------------------------------------|
| id, version, created_at, updated_at            | dropped; the store assigns fresh values        |
| email, first_name, last_name, avatar,          | primary's value, or secondary's when primary's |
| gender, birth_year                             | is None                                        |
| role                                           | primary's role                                 |
| devices                                        | union by device_id, first seen wins            |
| favorite_lines, favorite_stops                 | union, duplicates removed, first-seen order    |
| notifications                                  | union by notification id, first seen wins      |

"First seen" always walks primary before secondary.
"""
from typing import Callable, Hashable, Iterable, List, TypeVar

from models.account import Account

T = TypeVar("T")

PROFILE_FIELDS = ("email", "first_name", "last_name", "avatar", "gender", "birth_year")


def union(*sequences: Iterable[T], key: Callable[[T], Hashable] = lambda item: item) -> List[T]:
    """Concatenate `sequences`, keeping only the first item for each key."""
    seen = set()
    out: List[T] = []
    for sequence in sequences:
        for item in sequence:
            k = key(item)
            if k in seen:
                continue
            seen.add(k)
            out.append(item)
    return out


def merge_accounts(primary: Account, secondary: Account) -> Account:
    profile = {
        field: getattr(primary, field) if getattr(primary, field) is not None else getattr(secondary, field)
        for field in PROFILE_FIELDS
    }
    return Account(
        devices=union(primary.devices, secondary.devices, key=lambda d: d.device_id),
        role=primary.role,
        favorite_lines=union(primary.favorite_lines, secondary.favorite_lines),
        favorite_stops=union(primary.favorite_stops, secondary.favorite_stops),
        notifications=union(primary.notifications, secondary.notifications, key=lambda n: n.id),
        **profile,
    )
