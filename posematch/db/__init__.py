"""
Async PostgreSQL persistence for captured photos and saved reference poses.

We use `asyncpg` directly (no ORM). Every query is scoped to a user id that
the HTTP layer has already resolved; nothing here checks identity itself.
"""

from posematch.db.gallery import (
	delete_gallery_photo,
	get_gallery_photo,
	list_gallery_photos,
	save_gallery_photo,
)
from posematch.db.pool import close_db, get_pool, get_status, init_db
from posematch.db.saved import (
	delete_saved_photo,
	get_saved_photo,
	list_saved_photos,
	save_photo,
)

__all__ = [
	"init_db",
	"close_db",
	"get_pool",
	"get_status",
	"save_gallery_photo",
	"list_gallery_photos",
	"get_gallery_photo",
	"delete_gallery_photo",
	"save_photo",
	"list_saved_photos",
	"get_saved_photo",
	"delete_saved_photo",
]
