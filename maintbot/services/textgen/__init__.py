"""Drafting of service request emails and unit checklists"""

from .base import TextGenProvider, EmailDetails, ChecklistDetails
from .manager import textgen_manager

__all__ = ['TextGenProvider', 'EmailDetails', 'ChecklistDetails', 'textgen_manager']
