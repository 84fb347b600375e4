from .error_handler import ErrorHandlerMiddleware, BusinessException

__all__ = ["ErrorHandlerMiddleware", "BusinessException"]
