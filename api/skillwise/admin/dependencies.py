"""FastAPI dependencies for administration."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.admin.service import AdminError, AdminService


async def get_admin_service(request: Request) -> AdminService:
    """Get admin service from app state."""
    service = getattr(request.app.state, "admin_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin service not available",
        )
    return service


AdminServiceDep = Annotated[AdminService, Depends(get_admin_service)]


def handle_admin_error(error: AdminError) -> HTTPException:
    """Convert admin errors to HTTP exceptions."""
    status_map = {
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_role": status.HTTP_400_BAD_REQUEST,
        "self_modification": status.HTTP_400_BAD_REQUEST,
        "parental_approval_required": status.HTTP_403_FORBIDDEN,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
