"""
Alert record models shared by the alert store, actions and notify endpoint.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AlertRecord(BaseModel):
    """
    One risk alert for a user, as found in the alert source file.

    Activity detail entries are opaque; unknown top-level fields are kept so a
    dump returns what was loaded.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    user_principal_name: str = Field(alias="UserPrincipalName")
    sequential_activities: List[Any] = Field(alias="SequentialActivities", default_factory=list)
    comparative_activities: List[Any] = Field(alias="ComparativeActivities", default_factory=list)

    @field_validator("sequential_activities", "comparative_activities", mode="before")
    @classmethod
    def null_activities_as_empty(cls, v):
        """Source files write null for alerts without activity detail"""
        return [] if v is None else v

    def to_json_dict(self) -> Dict[str, Any]:
        """Dump with source field names for conversation state and cards."""
        return self.model_dump(by_alias=True, mode="json")


class NotifyRequest(BaseModel):
    """Body of POST /api/notify."""
    key: List[AlertRecord]
