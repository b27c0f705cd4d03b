"""
market/models.py -- Domain dataclasses for the pitch marketplace.

Pure data containers with zero logic. Interest bookkeeping lives in
market/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Pitch:
    """A founder's startup submission.

    founder_id references auth users.id. The two live in separate databases,
    so the route layer resolves the founder through UserStore.

    id is None before the record is written to the database.
    """

    name: str
    description: str
    industry: str
    stage: str  # one of auth.models.STAGES
    founder_id: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
