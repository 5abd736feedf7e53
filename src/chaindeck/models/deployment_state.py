"""Deployment record model for cached deployments."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

ADDRESS_FIELD = "address"
TX_HASH_FIELD = "txHash"
# Sub-record holding the implementation behind a proxied deployment
IMPLEMENTATION_FIELD = "implementation"


class RecordStatus(str, Enum):
    """Where a deployment sits in the submit / confirm / record sequence."""

    ABSENT = "absent"
    PENDING = "pending"
    DONE = "done"


class DeploymentRecord(BaseModel):
    """Cached deployment record for a single logical name on one network."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    address: str | None = Field(
        default=None, description="Confirmed on-chain address"
    )
    tx_hash: str | None = Field(
        default=None,
        alias=TX_HASH_FIELD,
        description="Submitted deployment transaction hash",
    )

    @property
    def status(self) -> RecordStatus:
        """Return the state derived from which fields are present."""
        if self.address:
            return RecordStatus.DONE
        if self.tx_hash:
            return RecordStatus.PENDING
        return RecordStatus.ABSENT

    @classmethod
    def from_entry(cls, entry: Any) -> DeploymentRecord:
        """Build a record from a raw cache document entry."""
        if not isinstance(entry, dict):
            return cls()
        return cls.model_validate(entry)
