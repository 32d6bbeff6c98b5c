"""
Custom exception hierarchy for the Threadline check service
"""

from typing import Optional, Dict, Any


class ThreadlineException(Exception):
    """Base exception for all threadline service errors"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class AIProviderException(ThreadlineException):
    """AI provider related errors"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get('details', {})
        if provider:
            details['provider'] = provider
        if model:
            details['model'] = model

        super().__init__(message, details, kwargs.get('original_error'))
        self.provider = provider
        self.model = model


class CheckValidationException(ThreadlineException):
    """Inbound check request validation errors"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get('details', {})
        if field:
            details['field'] = field

        super().__init__(message, details, kwargs.get('original_error'))
        self.field = field


class ConfigurationException(ThreadlineException):
    """Configuration validation errors"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get('details', {})
        if config_key:
            details['config_key'] = config_key

        super().__init__(message, details, kwargs.get('original_error'))


class SecurityException(ThreadlineException):
    """Security-related errors"""

    def __init__(
        self,
        message: str,
        security_context: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get('details', {})
        if security_context:
            details['security_context'] = security_context

        super().__init__(message, details, kwargs.get('original_error'))


class CheckNotFoundException(ThreadlineException):
    """Referenced check or fix does not exist"""

    def __init__(
        self,
        message: str,
        check_id: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get('details', {})
        if check_id:
            details['check_id'] = check_id

        super().__init__(message, details, kwargs.get('original_error'))
        self.check_id = check_id
