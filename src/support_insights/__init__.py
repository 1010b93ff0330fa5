"""Customer-service case study: ticket / complaint KPIs from three CSV exports."""

__version__ = "0.1.0"
