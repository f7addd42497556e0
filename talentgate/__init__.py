"""Role-based route authorization and tenant isolation for a multi-tenant ATS."""

__version__ = "0.1.0"
