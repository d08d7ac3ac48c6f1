"""Channel ranking dashboard: paginated ranking browser with selection and CSV export."""

__version__ = "0.1.0"
