"""Preset pose catalog. Routes: /api/poses, /api/poses/categories, /api/poses/{pose_id}."""
from typing import Optional

from fastapi import APIRouter, HTTPException

from posematch.presets import get_pose_by_id, list_categories, list_poses

router = APIRouter(tags=["poses"])


@router.get("/api/poses")
async def list_poses_endpoint(category: Optional[str] = None):
	"""Built-in reference poses, optionally filtered by category."""
	poses = list_poses(category)
	return {"poses": [p.to_dict() for p in poses], "count": len(poses)}


@router.get("/api/poses/categories")
async def list_categories_endpoint():
	return {"categories": list_categories()}


@router.get("/api/poses/{pose_id}")
async def get_pose_endpoint(pose_id: str):
	pose = get_pose_by_id(pose_id)
	if pose is None:
		raise HTTPException(status_code=404, detail=f"Pose {pose_id} not found")
	return pose.to_dict()
