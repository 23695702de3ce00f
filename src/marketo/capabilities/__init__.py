"""Marketo operation groups."""

from marketo.capabilities.activities import ActivityCapability
from marketo.capabilities.campaigns import CampaignCapability
from marketo.capabilities.custom_objects import CustomObjectCapability
from marketo.capabilities.leads import LeadCapability, PartitionNotFoundError
from marketo.capabilities.programs import ProgramCapability
from marketo.capabilities.static_lists import StaticListCapability

__all__ = [
    "ActivityCapability",
    "CampaignCapability",
    "CustomObjectCapability",
    "LeadCapability",
    "PartitionNotFoundError",
    "ProgramCapability",
    "StaticListCapability",
]
