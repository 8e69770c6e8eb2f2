from crosspost.models.base import Base  # noqa: F401

from crosspost.models.listing import Listing  # noqa: F401
from crosspost.models.channel_listing import ChannelListing  # noqa: F401
from crosspost.models.audit_event import AuditEvent  # noqa: F401
from crosspost.models.api_key import ApiKey  # noqa: F401
from crosspost.models.marketplace_account import MarketplaceAccount  # noqa: F401
