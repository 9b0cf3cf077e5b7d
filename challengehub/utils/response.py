from typing import Any, Optional, Dict
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from challengehub.utils.errors import ChallengeHubError


def success_response(
    message: str = "Success",
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """
    Standard success response
    
    Args:
        message: Success message
        data: Response data (optional)
        status_code: HTTP status code (default: 200)
    
    Returns:
        JSONResponse with success format
    """
    response = {
        "success": True,
        "message": message
    }
    
    if data is not None:
        response["data"] = jsonable_encoder(data)
    
    return JSONResponse(content=response, status_code=status_code)


def error_response(
    message: str = "Error",
    status_code: int = 400,
    error: str = "BAD_REQUEST"
) -> JSONResponse:
    """
    Standard error response
    
    Args:
        message: Error message
        status_code: HTTP status code (default: 400)
        error: Machine-readable error kind
    
    Returns:
        JSONResponse with error format
    """
    return JSONResponse(
        content={
            "success": False,
            "error": error,
            "message": message
        },
        status_code=status_code
    )


def validation_error_response(
    message: str = "Validation error",
    errors: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """
    Standard validation error response
    
    Args:
        message: Validation error message
        errors: Dictionary of validation errors (optional)
    
    Returns:
        JSONResponse with validation error format (422)
    """
    response = {
        "success": False,
        "error": "VALIDATION_ERROR",
        "message": message
    }
    
    if errors:
        response["errors"] = jsonable_encoder(errors)
    
    return JSONResponse(content=response, status_code=422)


def unauthorized_response(
    message: str = "User authentication required"
) -> JSONResponse:
    """
    Standard unauthorized response
    
    Args:
        message: Unauthorized message
    
    Returns:
        JSONResponse with unauthorized format (401)
    """
    return error_response(message=message, status_code=401, error="UNAUTHORIZED")


def service_error_response(exc: ChallengeHubError) -> JSONResponse:
    """Convert a service-layer error into the matching error response"""
    return error_response(message=exc.message, status_code=exc.status_code, error=exc.kind)
