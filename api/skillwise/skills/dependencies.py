"""FastAPI dependencies for the skills marketplace."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from skillwise.skills.service import SkillsError, SkillsService


async def get_skills_service(request: Request) -> SkillsService:
    service = getattr(request.app.state, "skills_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Skills service not available",
        )
    return service


SkillsServiceDep = Annotated[SkillsService, Depends(get_skills_service)]


def handle_skills_error(error: SkillsError) -> HTTPException:
    """Convert skills errors to HTTP exceptions."""
    status_map = {
        "skill_post_not_found": status.HTTP_404_NOT_FOUND,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "not_owner": status.HTTP_403_FORBIDDEN,
        "invalid_skill_post": status.HTTP_400_BAD_REQUEST,
        "duplicate_review": status.HTTP_400_BAD_REQUEST,
        "invalid_cursor": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
