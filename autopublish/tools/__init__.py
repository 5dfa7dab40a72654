"""
External service clients for the auto-publish service.

- AirtableClient: Airtable REST API, used to mirror articles into a table
- InstagramClient: Instagram Graph API content publishing
- InstagramPoster: Cross-post adapter that resolves Instagram credentials
  from integration settings
"""

from autopublish.tools.airtable import AirtableClient
from autopublish.tools.instagram import InstagramClient, InstagramPoster, build_caption

__all__ = [
    "AirtableClient",
    "InstagramClient",
    "InstagramPoster",
    "build_caption",
]
