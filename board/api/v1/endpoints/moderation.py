"""
Operator HTTP surface: GET-style triggers that redirect back to the moderation view.
"""
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse

from board.core.errors import AlreadyPermanentError, BoardError, NotFoundError, StorageError
from board.api.deps import get_workflow, require_operator
from board.schemas.moderation import ModerationView, PromoCodeOut
from board.services.moderation import ModerationWorkflow, Operator

router = APIRouter(prefix="/moderation")


def _http_error(e: BoardError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, AlreadyPermanentError):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, StorageError):
        return HTTPException(status_code=503, detail=e.message)
    return HTTPException(status_code=400, detail=e.message)


def _back_to_view(secret: str | None) -> RedirectResponse:
    return RedirectResponse(url="/v1/moderation?" + urlencode({"secret": secret or ""}), status_code=303)


@router.get("", response_model=ModerationView, response_model_by_alias=True)
async def moderation_view(
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> ModerationView:
    try:
        return await workflow.view(operator)
    except BoardError as e:
        raise _http_error(e)


@router.get("/approve/{listing_id}")
async def approve(
    listing_id: str,
    secret: str | None = Query(default=None),
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> RedirectResponse:
    try:
        await workflow.approve(operator, listing_id)
    except BoardError as e:
        raise _http_error(e)
    return _back_to_view(secret)


@router.get("/reject/{listing_id}")
async def reject(
    listing_id: str,
    secret: str | None = Query(default=None),
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> RedirectResponse:
    try:
        await workflow.reject(operator, listing_id)
    except BoardError as e:
        raise _http_error(e)
    return _back_to_view(secret)


@router.get("/promote/{listing_id}")
async def promote(
    listing_id: str,
    secret: str | None = Query(default=None),
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> RedirectResponse:
    try:
        await workflow.promote(operator, listing_id)
    except BoardError as e:
        raise _http_error(e)
    return _back_to_view(secret)


@router.get("/revoke/{listing_id}")
async def revoke_permanent(
    listing_id: str,
    secret: str | None = Query(default=None),
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> RedirectResponse:
    try:
        await workflow.revoke_permanent(operator, listing_id)
    except BoardError as e:
        raise _http_error(e)
    return _back_to_view(secret)


@router.get("/delete/{listing_id}")
async def delete_any(
    listing_id: str,
    secret: str | None = Query(default=None),
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> RedirectResponse:
    try:
        await workflow.delete_any(operator, listing_id)
    except BoardError as e:
        raise _http_error(e)
    return _back_to_view(secret)


@router.post("/promo-codes", response_model=PromoCodeOut)
async def create_promo_code(
    operator: Operator = Depends(require_operator),
    workflow: ModerationWorkflow = Depends(get_workflow),
) -> PromoCodeOut:
    try:
        code = await workflow.create_promo(operator)
    except BoardError as e:
        raise _http_error(e)
    return PromoCodeOut(code=code)
