"""
Cadence CRM - Models Package

from models import CreateOpportunityRequest
"""

from .radar import CreateOpportunityRequest

__all__ = ["CreateOpportunityRequest"]
