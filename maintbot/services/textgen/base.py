"""Base text generation provider interface"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class EmailDetails:
    """What a service request email is drafted from"""
    provider_name: str
    building_name: str
    building_address: str
    task_name: str
    task_description: str = ""
    unit_number: Optional[str] = None
    component_name: Optional[str] = None
    scheduled_date: Optional[date] = None
    notes: str = ""


@dataclass
class ChecklistDetails:
    unit_number: str
    property_type: str
    activity_type: str


class TextGenProvider(ABC):
    """Abstract text generation provider interface"""

    @abstractmethod
    async def request_email(self, details: EmailDetails) -> str:
        """Draft a service request email (subject line + body)"""
        pass

    @abstractmethod
    async def checklist(self, details: ChecklistDetails) -> str:
        """Draft a Markdown unit checklist"""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging"""
        pass
