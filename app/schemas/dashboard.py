from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


class DatePreset(str, Enum):
    today = "Today"
    last_7_days = "Last 7 Days"
    last_30_days = "Last 30 Days"
    this_month = "This Month"


class DateRange(BaseModel):
    start: datetime
    end: datetime
    label: str


class Kpis(BaseModel):
    total_calls: int
    hours_saved: float
    appointments_booked: int
    pipeline_value: float
    closed_revenue: float

    model_config = {"extra": "forbid"}


class Funnel(BaseModel):
    dials: int
    conversations: int
    interested: int
    booked: int

    model_config = {"extra": "forbid"}


class LeadSources(BaseModel):
    calls: int = 0
    sms: int = 0
    instagram: int = 0
    facebook: int = 0

    model_config = {"extra": "forbid"}


class HourlyActivity(BaseModel):
    hour: str
    count: int

    model_config = {"extra": "forbid"}


class Sentiment(BaseModel):
    positive: int = 0
    negative: int = 0
    booked: int = 0
    neutral: int = 0
    unresponsive: int = 0

    model_config = {"extra": "forbid"}

    @property
    def total(self) -> int:
        return self.positive + self.negative + self.booked + self.neutral + self.unresponsive


class HotLead(BaseModel):
    name: str
    lead_type: str
    budget: float
    timeline: Optional[str] = None
    preferences: Optional[str] = None

    model_config = {"extra": "forbid"}


class RecentCall(BaseModel):
    call_id: str
    phone_number: str
    contact_name: Optional[str] = None
    duration_seconds: float
    outcome: str
    recording_url: Optional[str] = None
    transcript_summary: Optional[str] = None
    created_at: str

    model_config = {"extra": "forbid"}


# Sub-objects the analytics API may omit; they normalize to zero values
_DEFAULTED_SECTIONS = {
    "lead_sources": dict,
    "hourly_activity": list,
    "sentiment": dict,
    "hot_leads": list,
}


class DashboardStats(BaseModel):
    """Payload of ``GET /stats`` on the analytics API."""
    kpis: Kpis
    funnel: Funnel
    outcomes: Dict[str, int]
    lead_sources: LeadSources = Field(default_factory=LeadSources)
    hourly_activity: List[HourlyActivity] = Field(default_factory=list)
    sentiment: Sentiment = Field(default_factory=Sentiment)
    hot_leads: List[HotLead] = Field(default_factory=list)
    recent_calls: List[RecentCall]

    model_config = {"extra": "forbid"}

    @field_validator("lead_sources", "hourly_activity", "sentiment", "hot_leads", mode="before")
    @classmethod
    def _null_to_empty(cls, value, info):
        if value is None:
            return _DEFAULTED_SECTIONS[info.field_name]()
        return value


class FunnelStage(BaseModel):
    name: str
    value: int


class LeadSourceRow(BaseModel):
    label: str
    count: int


class DashboardPanels(BaseModel):
    """Chart-ready data derived from the current stats."""
    greeting: str
    funnel: List[FunnelStage] = []
    lead_sources: List[LeadSourceRow] = []
    # None when there is no sentiment data for the period
    sentiment_percentages: Optional[Dict[str, int]] = None


class DateRangeRequest(BaseModel):
    preset: DatePreset


class DashboardViewResponse(BaseModel):
    stats: Optional[DashboardStats] = None
    loading: bool
    error: Optional[str] = None
    date_range: DateRange
    date_picker_open: bool = False
    client_id: Optional[str] = None
    last_updated_at: Optional[datetime] = None
    panels: DashboardPanels
