# backend/saferoute/models/report.py
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from saferoute.services.regions import ALL_BARANGAYS
from saferoute.services.timestamps import SENTINEL


class ReportStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    resolved = "resolved"
    rejected = "rejected"


SortOrder = Literal["asc", "desc"]


class Identity(BaseModel):
    """Resolved reporter identity. Every field is a display string, never missing."""
    model_config = ConfigDict(frozen=True)

    name: str = SENTINEL
    address: str = SENTINEL
    contact: str = SENTINEL


DEFAULT_IDENTITY = Identity()


# Stored item shape (keep these names exactly, the mobile app writes them)
class Report(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    category: str = ""
    location: Optional[str] = None
    landmark: Optional[str] = None
    datetime: Any = None
    # kept as str so a stray value in the table never rejects the whole batch
    status: str = Field(ReportStatus.pending.value)
    description: Optional[str] = None
    barangay: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None

    user_id: Optional[str] = Field(None, alias="userId")
    reported_by: Optional[str] = Field(None, alias="reportedBy")
    created_by: Optional[str] = Field(None, alias="createdBy")

    # Derived, never persisted
    reporter_name: Optional[str] = Field(None, alias="reporterName")
    reporter_address: Optional[str] = Field(None, alias="reporterAddress")
    reporter_contact: Optional[str] = Field(None, alias="reporterContact")
    epoch_ms: Optional[int] = Field(None, alias="_epochMs")

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, v: Any) -> str:
        if v is None or (isinstance(v, str) and not v.strip()):
            return ReportStatus.pending.value
        if isinstance(v, ReportStatus):
            return v.value
        return str(v).strip().lower()

    @field_validator("barangay", "category", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @property
    def is_enriched(self) -> bool:
        return self.reporter_name is not None

    def with_identity(self, identity: Identity) -> "Report":
        return self.model_copy(update={
            "reporter_name": identity.name,
            "reporter_address": identity.address,
            "reporter_contact": identity.contact,
        })

    def reporter(self) -> Identity:
        return Identity(
            name=self.reporter_name or SENTINEL,
            address=self.reporter_address or SENTINEL,
            contact=self.reporter_contact or SENTINEL,
        )


class FilterState(BaseModel):
    status_tab: ReportStatus = Field(ReportStatus.pending, alias="statusTab")
    search_term: str = Field("", alias="searchTerm")
    region_scope: str = Field(ALL_BARANGAYS, alias="regionScope")
    period_filter: str = Field("", alias="periodFilter", pattern=r"^(\d{4}-\d{2})?$")
    sort_order: SortOrder = Field("desc", alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)


class FilterUpdate(BaseModel):
    """Partial update; only the fields sent are applied."""
    model_config = ConfigDict(populate_by_name=True)

    status_tab: Optional[ReportStatus] = Field(None, alias="statusTab")
    search_term: Optional[str] = Field(None, alias="searchTerm")
    region_scope: Optional[str] = Field(None, alias="regionScope")
    period_filter: Optional[str] = Field(None, alias="periodFilter", pattern=r"^(\d{4}-\d{2})?$")
    sort_order: Optional[SortOrder] = Field(None, alias="sortOrder")


class PeriodSelection(BaseModel):
    month: str = "All Months"
    year: str = "All Years"


class StatusUpdate(BaseModel):
    status: ReportStatus


class Notice(BaseModel):
    """Transient operator-facing message (the toast of the admin screen)."""
    message: str
    danger: bool = False


class ReportDetail(BaseModel):
    report: Report
    reporter: Identity


class FilterOptions(BaseModel):
    regions: List[str]
    months: List[str]
    years: List[str]
