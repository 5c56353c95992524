"""
Custom Exception Classes for the Talent Match API
"""
import asyncio
import functools
import inspect
import time
from random import uniform
from typing import Dict, Any

from fastapi import HTTPException


class MatchingBaseException(Exception):
    """Base exception for the matching core"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(MatchingBaseException):
    """Raised when input reaching the matching core is unusable"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="VALIDATION_ERROR", details=details, **kwargs)


class NotFoundError(MatchingBaseException):
    """Raised when a job, company or candidate does not exist"""

    def __init__(self, message: str, entity_type: str = None, entity_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if entity_type:
            details['entity_type'] = entity_type
        if entity_id:
            details['entity_id'] = entity_id
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class EmbeddingGenerationError(MatchingBaseException):
    """Raised when the embedding provider fails or returns an unusable vector"""

    def __init__(self, message: str, model_name: str = None, task_type: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        if task_type:
            details['task_type'] = task_type
        super().__init__(message, error_code="EMBEDDING_GENERATION_ERROR", details=details, **kwargs)


class DimensionMismatchError(MatchingBaseException):
    """Raised when two vectors of different length are compared"""

    def __init__(self, left_dim: int, right_dim: int, **kwargs):
        details = kwargs.pop('details', {})
        details.update({"left_dimension": left_dim, "right_dimension": right_dim})
        super().__init__(
            f"Cannot compare vectors of dimension {left_dim} and {right_dim}",
            error_code="DIMENSION_MISMATCH",
            details=details,
            **kwargs
        )


class RetrievalError(MatchingBaseException):
    """Raised when the vector index cannot be queried"""

    def __init__(self, message: str, index_name: str = None, top_k: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if index_name:
            details['index_name'] = index_name
        if top_k is not None:
            details['top_k'] = top_k
        super().__init__(message, error_code="RETRIEVAL_ERROR", details=details, **kwargs)


class JudgeError(MatchingBaseException):
    """Raised when the LLM judge fails or returns an unusable verdict"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="JUDGE_ERROR", details=details, **kwargs)


class DocumentStoreError(MatchingBaseException):
    """Raised when document store operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DOCUMENT_STORE_ERROR", details=details, **kwargs)


class ConfigurationError(MatchingBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: MatchingBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        ValidationError: 400,
        NotFoundError: 404,
        EmbeddingGenerationError: 502,
        RetrievalError: 502,
        JudgeError: 502,
        DimensionMismatchError: 500,
        ConfigurationError: 500,
        DocumentStoreError: 503,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        "error": exc.to_dict(),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)


# Retry decorator with exponential backoff
def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None
):
    """Decorator to retry operations with exponential backoff and logging"""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    await asyncio.sleep(backoff_factor * (2 ** attempt) + uniform(0, backoff_factor))

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    time.sleep(backoff_factor * (2 ** attempt) + uniform(0, backoff_factor))

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
