from fastapi import Depends, HTTPException, Query, Request

from board.core.context import AppContext
from board.core.errors import AuthorizationError
from board.services.moderation import ModerationWorkflow, Operator, authorize_operator


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def get_workflow(ctx: AppContext = Depends(get_ctx)) -> ModerationWorkflow:
    return ModerationWorkflow(ctx)


async def require_operator(
    secret: str | None = Query(default=None),
    ctx: AppContext = Depends(get_ctx),
) -> Operator:
    try:
        return authorize_operator(ctx, secret=secret)
    except AuthorizationError:
        raise HTTPException(status_code=403, detail="Operator secret required")
