"""Multi-tenant real-estate CRM service."""

__version__ = "0.1.0"
