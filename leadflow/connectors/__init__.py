"""Outbound collaborators — identity directory, data broker, CRM."""

from .broker import BrokerClient  # noqa: F401
from .crm import CrmClient  # noqa: F401
from .directory import DirectoryClient  # noqa: F401
