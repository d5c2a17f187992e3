"""
Clients for the Flow API and attachment downloads.
"""

from flowtask.client.transport import FlowTransport
from flowtask.client.flow_api import FlowApiClient
from flowtask.client.files import FileFetcher

__all__ = ["FlowTransport", "FlowApiClient", "FileFetcher"]
