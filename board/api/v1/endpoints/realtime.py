"""
Realtime channel: one websocket per viewer or operator session.

Frames are JSON `{"event", "data", "ref"}`; a frame carrying `ref` is answered
with an `ack` frame when its operation has a response. Operator frames that
fail authorization are dropped without a reply.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError

from board.core.context import AppContext
from board.core.errors import AuthorizationError, BoardError, StorageError
from board.schemas import events
from board.schemas.events import Frame, VisibleState
from board.schemas.listing import ListingSubmit, OwnerDelete, SubmitResult
from board.schemas.moderation import OperatorCommand, PromoCodeOut
from board.services.broadcaster import Connection
from board.services.moderation import ModerationWorkflow, Operator, authorize_operator
from board.services.store import transaction
from board.services.submissions import SubmissionService
from board.services.visibility import load_visible

log = logging.getLogger(__name__)
router = APIRouter()

NO_REPLY = object()

Handler = Callable[[Any], Awaitable[Any]]


def _secret_of(data: Any) -> str | None:
    # older clients send the bare secret string
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return data.get("secret")
    return None


class RealtimeSession:
    def __init__(self, ctx: AppContext, conn: Connection):
        self.ctx = ctx
        self.conn = conn
        self.submissions = SubmissionService(ctx)
        self.workflow = ModerationWorkflow(ctx)
        self._handlers: dict[str, Handler] = {
            events.SUBMIT: self.on_submit,
            events.DELETE_OWN: self.on_delete_own,
            events.OPERATOR_LOGIN: self.on_operator_login,
            events.GET_PENDING: self.on_get_pending,
            events.GET_ALL: self.on_get_all,
            events.APPROVE: self._transition(self.workflow.approve),
            events.REJECT: self._transition(self.workflow.reject),
            events.DELETE_ANY: self._transition(self.workflow.delete_any),
            events.PROMOTE: self._transition(self.workflow.promote),
            events.REVOKE_PERMANENT: self._transition(self.workflow.revoke_permanent),
            events.CREATE_PROMO: self.on_create_promo,
        }

    async def open(self) -> None:
        # Attach and snapshot under the write lock: every later mutation is published after this frame.
        async with self.ctx.write_lock:
            async with transaction(self.ctx.sessions) as db:
                ads = await load_visible(db, limit=self.ctx.settings.visible_limit)
            self.ctx.broadcaster.attach(self.conn)
            self.ctx.broadcaster.unicast(
                self.conn,
                events.INITIAL_ADS,
                VisibleState(ads=ads, next_reset=self.ctx.scheduler.next_reset_ms),
            )

    def close(self) -> None:
        self.ctx.broadcaster.detach(self.conn)
        self.ctx.operators.revoke(self.conn.operator_token)
        self.conn.close()

    async def handle(self, raw: str | bytes) -> None:
        try:
            frame = Frame.model_validate_json(raw)
        except PayloadError:
            self.ctx.broadcaster.unicast(self.conn, events.ERROR, {"message": "Malformed frame"})
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            self.ctx.broadcaster.unicast(self.conn, events.ERROR, {"message": f"Unknown event: {frame.event}"}, ref=frame.ref)
            return

        try:
            result = await handler(frame.data)
        except BoardError as e:
            self.ctx.broadcaster.unicast(self.conn, events.ERROR, {"message": e.message}, ref=frame.ref)
            return
        if result is not NO_REPLY and frame.ref is not None:
            self.ctx.broadcaster.unicast(self.conn, events.ACK, result, ref=frame.ref)

    # viewer events

    async def on_submit(self, data: Any) -> SubmitResult:
        try:
            payload = ListingSubmit.model_validate(data or {})
            listing = await self.submissions.submit(payload)
        except PayloadError:
            return SubmitResult(success=False, message="Malformed listing")
        except BoardError as e:
            if not isinstance(e, StorageError):
                log.info("submission refused: %s", e.code)
            return SubmitResult(success=False, message=e.message)
        return SubmitResult(success=True, id=listing.id, message="Listing sent for moderation")

    async def on_delete_own(self, data: Any) -> SubmitResult:
        try:
            req = OwnerDelete.model_validate(data or {})
            await self.submissions.delete_own(req.listing_id, req.owner_id)
        except PayloadError:
            return SubmitResult(success=False, message="Malformed request")
        except BoardError as e:
            return SubmitResult(success=False, message=e.message)
        return SubmitResult(success=True)

    # operator events

    def _operator(self, data: Any) -> Operator | None:
        try:
            return authorize_operator(self.ctx, secret=_secret_of(data), token=self.conn.operator_token)
        except AuthorizationError:
            return None

    async def on_operator_login(self, data: Any) -> Any:
        token = self.ctx.operators.issue(_secret_of(data))
        if token is None:
            return NO_REPLY
        self.ctx.operators.revoke(self.conn.operator_token)
        self.conn.operator_token = token
        log.info("session %s authorized as operator", self.conn.id)
        return {"success": True}

    async def on_get_pending(self, data: Any) -> list:
        operator = self._operator(data)
        if operator is None:
            return []
        return await self.workflow.list_pending(operator)

    async def on_get_all(self, data: Any) -> list:
        operator = self._operator(data)
        if operator is None:
            return []
        return await self.workflow.list_all(operator)

    async def on_create_promo(self, data: Any) -> Any:
        operator = self._operator(data)
        if operator is None:
            return NO_REPLY
        return PromoCodeOut(code=await self.workflow.create_promo(operator))

    def _transition(self, action: Callable[[Operator, str], Awaitable[Any]]) -> Handler:
        async def run(data: Any) -> Any:
            operator = self._operator(data)
            if operator is None:
                return NO_REPLY
            try:
                cmd = OperatorCommand.model_validate(data)
            except PayloadError:
                return NO_REPLY
            if not cmd.listing_id:
                return NO_REPLY
            try:
                await action(operator, cmd.listing_id)
            except BoardError as e:
                log.info("%s on %s ignored: %s", action.__name__, cmd.listing_id, e.code)
            return NO_REPLY

        return run


@router.websocket("/ws")
async def realtime(websocket: WebSocket) -> None:
    ctx: AppContext = websocket.app.state.ctx
    await websocket.accept()

    conn = Connection(websocket.send_json)
    session = RealtimeSession(ctx, conn)
    await session.open()
    pump = asyncio.create_task(conn.pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # binary frames go through the same JSON parsing as text ones
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await session.handle(raw)
    except WebSocketDisconnect:
        log.debug("session %s disconnected", conn.id)
    finally:
        session.close()
        await pump
