"""Live session updates over WebSocket. Route: /ws."""
import asyncio
import itertools
import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ws"])


def _encode(message: Dict[str, Any]) -> str:
	return json.dumps(message, separators=(",", ":"), default=str)


class ConnectionManager:
	"""
	Fan-out to every connected browser.

	Two message kinds go out: {"type": "status", ...session snapshot} whenever
	the score/guidance/capture state changes, and {"type": "log", "msg": ...}.
	Clients whose socket fails are dropped on the next broadcast.
	"""

	def __init__(self) -> None:
		self._ids = itertools.count(1)
		self._clients: Dict[int, WebSocket] = {}
		self._guard = asyncio.Lock()

	@property
	def client_count(self) -> int:
		return len(self._clients)

	async def register(self, websocket: WebSocket) -> int:
		await websocket.accept()
		cid = next(self._ids)
		async with self._guard:
			self._clients[cid] = websocket
		logger.debug("[WS] client %d connected (%d total)", cid, len(self._clients))
		return cid

	async def unregister(self, cid: int) -> None:
		async with self._guard:
			self._clients.pop(cid, None)

	async def _deliver(self, cid: int, websocket: WebSocket, text: str) -> bool:
		try:
			await websocket.send_text(text)
		except (WebSocketDisconnect, RuntimeError, OSError) as e:
			logger.debug("[WS] dropping client %d: %r", cid, e)
			return False
		return True

	async def broadcast_json(self, message: Dict[str, Any]) -> None:
		async with self._guard:
			targets = list(self._clients.items())
		if not targets:
			return
		text = _encode(message)
		ok = await asyncio.gather(*(self._deliver(cid, ws, text) for cid, ws in targets))
		for (cid, _ws), delivered in zip(targets, ok):
			if not delivered:
				await self.unregister(cid)

	async def broadcast_status(self, status: Dict[str, Any]) -> None:
		await self.broadcast_json({"type": "status", **status})

	async def broadcast_log(self, line: str) -> None:
		await self.broadcast_json({"type": "log", "msg": line})


manager = ConnectionManager()


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
	cid = await manager.register(websocket)
	try:
		# Late joiners get the current snapshot instead of waiting for the next change.
		state = getattr(websocket.app.state, "state", None)
		if state is not None and state.session is not None:
			await websocket.send_text(_encode({"type": "status", **state.session.status()}))
		while True:
			text = await websocket.receive_text()
			if text.strip().lower() == "ping":
				await websocket.send_text(_encode({"type": "pong"}))
	except WebSocketDisconnect:
		pass
	finally:
		await manager.unregister(cid)
