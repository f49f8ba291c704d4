from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..breadcrumbs import breadcrumb_labels
from .auth import User, get_current_user

router = APIRouter(prefix="/breadcrumbs", tags=["breadcrumbs"])


class LabelIn(BaseModel):
	path: str
	label: str


@router.get("", response_model=Dict[str, str])
async def get_labels(user: User = Depends(get_current_user)):
	return breadcrumb_labels.labels()


@router.put("", response_model=Dict[str, str])
async def set_label(req: LabelIn, user: User = Depends(get_current_user)):
	path = req.path.strip()
	if not path.startswith("/"):
		raise HTTPException(status_code=400, detail="path must start with '/'")
	breadcrumb_labels.set_label(path, req.label)
	return breadcrumb_labels.labels()
