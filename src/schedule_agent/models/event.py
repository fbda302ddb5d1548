"""
Conference event models — the events a schedule is built for.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class ConferenceEvent(BaseModel):
    id: str = Field(alias="Id")
    name: str = Field(default="", alias="Name")
    start_date: Optional[date] = Field(default=None, alias="Event_Start_Date__c")
    end_date: Optional[date] = Field(default=None, alias="Event_End_Date__c")

    model_config = {"populate_by_name": True}

    @property
    def label(self) -> str:
        """Display label, e.g. "DevSummit (2025-03-01 - 2025-03-03)"."""
        start = self.start_date.isoformat() if self.start_date else ""
        end = self.end_date.isoformat() if self.end_date else ""
        return f"{self.name} ({start} - {end})"
