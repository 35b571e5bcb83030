from .client import BridgeConfigError, BridgeSettings, FormsServiceClient, UpstreamError, is_route_missing

__all__ = ["BridgeConfigError", "BridgeSettings", "FormsServiceClient", "UpstreamError", "is_route_missing"]
