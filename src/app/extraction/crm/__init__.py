"""CRM integration for contact field extraction.

Contains:
- CRMClient: abstract interface for record and schema operations
- LeadConnectorClient: httpx implementation for the LeadConnector API
"""

from src.app.extraction.crm.adapter import CRMClient
from src.app.extraction.crm.leadconnector import LeadConnectorClient

__all__ = ["CRMClient", "LeadConnectorClient"]
