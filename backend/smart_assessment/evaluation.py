from __future__ import annotations
import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .lmstudio_client import LMStudioClient
from .settings import settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
	"You are an expert teacher who evaluates student answers fairly and provides "
	"constructive feedback. Always respond with valid JSON format."
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_MARKS_IN_TEXT = re.compile(r"marks[:\s]+(\d+\.?\d*)", re.IGNORECASE)


class EvaluationRequest(BaseModel):
	question_text: str
	correct_answer: str
	student_answer: str
	max_marks: float = Field(gt=0)


class EvaluationResult(BaseModel):
	marks_obtained: float
	feedback: str
	evaluation_details: str


def build_evaluation_prompt(request: EvaluationRequest) -> str:
	max_marks = f"{request.max_marks:g}"
	return (
		"You are an expert teacher evaluating student answers. Your task is to evaluate the student's answer "
		"based on content accuracy, completeness, and understanding.\n\n"
		f"Question: {request.question_text}\n\n"
		f"Model Answer (Staff/Correct Answer): {request.correct_answer}\n\n"
		f"Student's Answer: {request.student_answer}\n\n"
		f"Maximum Marks: {max_marks}\n\n"
		"Please evaluate the student's answer by comparing it with the model answer. Consider:\n"
		"1. Content accuracy - Does the answer contain correct information?\n"
		"2. Completeness - Does it cover all key points from the model answer?\n"
		"3. Understanding - Does the student demonstrate understanding of the concept?\n"
		"4. Relevance - Is the answer relevant to the question?\n\n"
		"Provide your evaluation in the following JSON format:\n"
		"{\n"
		f'  "marksObtained": <number between 0 and {max_marks}>,\n'
		'  "feedback": "<brief constructive feedback in 2-3 sentences>",\n'
		'  "reasoning": "<explanation of why you gave these marks>"\n'
		"}\n\n"
		"Important: Give marks proportionally. If the student answer is partially correct, give partial marks. "
		"Be fair and considerate."
	)


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
	"""Pull the outermost ``{...}`` span out of free text and parse it.

	Returns None when there is no object or it does not parse.
	"""
	match = _JSON_OBJECT.search(text or "")
	if not match:
		return None
	try:
		data = json.loads(match.group(0))
	except ValueError:
		return None
	return data if isinstance(data, dict) else None


def _clamp(value: float, max_marks: float) -> float:
	return max(0.0, min(value, max_marks))


def _as_number(value: Any) -> float:
	try:
		number = float(value)
	except (TypeError, ValueError):
		return 0.0
	# NaN
	return number if number == number else 0.0


def parse_evaluation(text: str, max_marks: float) -> EvaluationResult:
	parsed = extract_json_object(text)
	if parsed is not None:
		return EvaluationResult(
			marks_obtained=_clamp(_as_number(parsed.get("marksObtained")), max_marks),
			feedback=str(parsed.get("feedback") or "Evaluation completed."),
			evaluation_details=str(parsed.get("reasoning") or "AI evaluation completed"),
		)
	marks_match = _MARKS_IN_TEXT.search(text or "")
	if marks_match:
		return EvaluationResult(
			marks_obtained=_clamp(float(marks_match.group(1)), max_marks),
			feedback=text[:200],
			evaluation_details="Parsed from AI text response",
		)
	return EvaluationResult(
		marks_obtained=0,
		feedback="Unable to parse AI evaluation. Please evaluate manually.",
		evaluation_details=(text or "")[:300],
	)


def failed_evaluation(error: BaseException) -> EvaluationResult:
	return EvaluationResult(
		marks_obtained=0,
		feedback="AI evaluation failed. Please evaluate manually.",
		evaluation_details=f"Error: {error}",
	)


async def evaluate_answer(request: EvaluationRequest, client: LMStudioClient) -> EvaluationResult:
	messages = [
		{"role": "system", "content": SYSTEM_PROMPT},
		{"role": "user", "content": build_evaluation_prompt(request)},
	]
	try:
		content = await client.chat(
			messages,
			temperature=settings.evaluation_temperature,
			max_tokens=settings.evaluation_max_tokens,
		)
	except Exception as err:
		logger.error("AI evaluation error: %s", err)
		return failed_evaluation(err)
	return parse_evaluation(content, request.max_marks)


async def batch_evaluate(
	requests: Sequence[EvaluationRequest],
	client: LMStudioClient,
	*,
	delay: Optional[float] = None,
) -> List[EvaluationResult]:
	# One request at a time, with a fixed pause between requests
	pause = settings.evaluation_batch_delay if delay is None else delay
	results: List[EvaluationResult] = []
	for i, request in enumerate(requests):
		results.append(await evaluate_answer(request, client))
		if pause > 0 and i < len(requests) - 1:
			await asyncio.sleep(pause)
	return results
