from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..evaluation import EvaluationRequest, EvaluationResult, batch_evaluate, evaluate_answer
from ..lmstudio_client import LMStudioClient
from ..models import ROLE_ADMIN, ROLE_TEACHER
from .auth import User, require_roles

router = APIRouter(prefix="/evaluations", tags=["evaluations"])

# Caps one batch call; larger sets should be split by the caller
MAX_BATCH_SIZE = 50


class BatchEvaluationRequest(BaseModel):
	items: List[EvaluationRequest]


async def get_llm_client():
	client = LMStudioClient()
	try:
		yield client
	finally:
		await client.aclose()


@router.post("", response_model=EvaluationResult)
async def evaluate(
	req: EvaluationRequest,
	user: User = Depends(require_roles(ROLE_ADMIN, ROLE_TEACHER)),
	client: LMStudioClient = Depends(get_llm_client),
):
	return await evaluate_answer(req, client)


@router.post("/batch", response_model=List[EvaluationResult])
async def evaluate_batch(
	req: BatchEvaluationRequest,
	user: User = Depends(require_roles(ROLE_ADMIN, ROLE_TEACHER)),
	client: LMStudioClient = Depends(get_llm_client),
):
	if not req.items:
		raise HTTPException(status_code=400, detail="items must not be empty")
	if len(req.items) > MAX_BATCH_SIZE:
		raise HTTPException(status_code=400, detail=f"at most {MAX_BATCH_SIZE} items per batch")
	return await batch_evaluate(req.items, client)
