from yourstop.api.client import YourStopClient
from yourstop.api.server import YourStopServer, create_app

__all__ = ["YourStopClient", "YourStopServer", "create_app"]
