"""
Exception classes for skylark-curl
"""

from typing import Optional, Dict, Any


class SkylarkError(Exception):
    """Base exception for all skylark-curl errors"""
    
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class ValidationError(SkylarkError):
    """Exception raised for validation failures"""
    pass


class ConfigurationError(SkylarkError):
    """Exception raised when the driver or proxy cannot be configured to start"""
    pass


class StorageError(SkylarkError):
    """Exception raised for credential storage related errors"""
    pass


class TransportError(SkylarkError):
    """Exception raised when the external HTTP transport cannot be run"""
    
    def __init__(self, message: str, error_code: str = "TRANSPORT_ERROR",
                 exit_code: int = 1, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
        self.exit_code = exit_code
