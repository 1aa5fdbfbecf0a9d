"""
FastAPI dependencies. Use Depends(get_state) in route handlers to receive AppState,
Depends(get_user_id) on routes that read or write a user's photos.
"""
from typing import Optional

from fastapi import Header, HTTPException, Request

from app_state import AppState


def get_state(request: Request) -> AppState:
	"""Return the app state instance attached in lifespan."""
	return request.app.state.state


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
	"""Identity comes from the auth layer in front of us as X-User-Id."""
	uid = (x_user_id or "").strip()
	if not uid:
		raise HTTPException(status_code=401, detail="Sign in to use your gallery")
	return uid
