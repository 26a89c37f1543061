"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from disbursement_engine.disbursement import Disbursement


def get_disbursement(request: Request) -> Disbursement:
    """Get the composition root owned by the running app."""
    return request.app.state.disbursement


# Type alias for cleaner dependency injection
System = Annotated[Disbursement, Depends(get_disbursement)]
