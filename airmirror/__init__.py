"""Building blocks for an AirPlay screen-mirroring receiver."""

__version__ = "0.1.0"

__all__ = [
    "byteutils",
    "crypto",
    "fairplay",
    "http_request",
    "http_response",
    "http_semantics",
    "httpd",
    "logger",
    "mirror_buffer",
    "netutils",
    "pairing",
]