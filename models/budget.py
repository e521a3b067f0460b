"""Budget ledger models.

LedgerEntry:
    One recorded backend call. Entries are append-only.

BudgetStatus:
    Snapshot of spend against the cap.
"""

from pydantic import BaseModel, ConfigDict, Field


class LedgerEntry(BaseModel):
    """Usage of a single backend call."""

    model_config = ConfigDict(frozen=True)

    model: str
    input_units: int = Field(ge=0)
    output_units: int = Field(ge=0)
    cost: float = Field(ge=0.0, description="Dollars")
    timestamp: float


class BudgetStatus(BaseModel):
    """Spend snapshot.

    ``exceeded`` is sticky for the session: once spend reaches the cap
    only an explicit reset clears it.
    """

    spent: float
    remaining: float
    percentage: float
    cap: float
    warning: bool
    exceeded: bool
