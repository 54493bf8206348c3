"""
Minimal example: record a field-level audit entry for an edited profile.

Run this with:
    python examples/minimal.py

Or diff two JSON snapshots from the shell:
    snapdiff diff --shape examples.minimal:Profile before.json after.json
"""

import datetime
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from snapdiff import diff, get_engine


@dataclass
class Address:
    city: str = ""
    postcode: str = ""


@dataclass
class Profile:
    user_id: int = 0
    display_name: str = ""
    updated_at: Optional[datetime.datetime] = None
    address: Optional[Address] = None
    roles: List[str] = field(default_factory=list)
    preferences: Dict[str, str] = field(default_factory=dict)


def main() -> None:
    before = Profile(
        user_id=42,
        display_name="Ada",
        address=Address("Leeds", "LS1"),
        roles=["reader"],
        preferences={"theme": "dark"},
    )
    after = Profile(
        user_id=42,
        display_name="Ada Park",
        updated_at=datetime.datetime(2024, 3, 4, 9, 0),
        address=Address("York", "LS1"),
        roles=["reader", "editor"],
        preferences={"theme": "light"},
    )

    # Fields are emitted scalars first, then nested/list/map fields
    print("Fields:", ", ".join(get_engine(Profile).field_names()))

    change = diff(before, after)
    print(f"\nAudit entry:\n{change}")

    # Unchanged snapshots produce an empty object
    print(f"\nNo-op edit: {diff(after, after)}")


if __name__ == "__main__":
    main()
