"""
Error taxonomy for the AI analysis client.

ConfigurationError is fatal and surfaces at construction. TransportError and
ParseError are raised at the transport/decoder seam and always recovered by
the client with a locally computed fallback.
"""

from dataclasses import dataclass
from typing import Optional


class AIServiceError(Exception):
    """Base class for analysis client errors"""


class ConfigurationError(AIServiceError):
    """Missing or implausible credential/model settings"""


@dataclass
class TransportError(AIServiceError):
    message: str
    status_code: Optional[int] = None
    body: Optional[str] = None

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status={self.status_code})"


class ParseError(AIServiceError):
    """Model reply did not contain a decodable, schema-conforming payload"""
