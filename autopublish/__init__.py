"""Auto-publish service: publishes scheduled articles and syncs them to Airtable and Instagram."""

__version__ = "0.1.0"
