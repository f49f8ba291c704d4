#!/usr/bin/env python3
"""Connection test for the local LM Studio server.

Checks that the chat completions endpoint answers, then runs one grading
prompt and tries to read the JSON verdict out of the reply. No database needed.

Usage: python -m smart_assessment.lmstudio_check [--url URL] [--model MODEL]
"""
from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any, List, Optional

import httpx

from .evaluation import extract_json_object
from .lmstudio_client import LMStudioClient, response_content

CONNECT_TIMEOUT = 10.0
EVALUATION_TIMEOUT = 15.0
RULE = "─" * 60

CONNECTION_REFUSED_STEPS = [
	"Make sure LM Studio is installed",
	'Open LM Studio and go to the "Local Server" tab',
	"Load a model (e.g., oreal-deepseek-r1-distill-qwen-7b)",
	'Click "Start Server"',
	'Verify it shows: "Server running on port 1234"',
	"Try this test again",
]

TIMEOUT_STEPS = [
	"Check if LM Studio server is responding",
	"Try restarting LM Studio",
	"Check if the model is properly loaded",
]

EVALUATION_PROMPT = """You are an expert teacher evaluating student answers.

Question: What is 2 + 2?

Model Answer: 4 (four)

Student's Answer: 4

Maximum Marks: 5

Evaluate and respond with JSON:
{
  "marksObtained": <number 0-5>,
  "feedback": "<brief feedback>",
  "reasoning": "<why you gave these marks>"
}"""


def _print_steps(steps: List[str]) -> None:
	print("\n💡 Solutions:")
	for number, step in enumerate(steps, start=1):
		print(f"   {number}. {step}")


def report_error(err: Exception) -> None:
	print("❌ CONNECTION FAILED\n")
	if isinstance(err, httpx.ConnectError):
		print("Error: Cannot connect to LM Studio")
		_print_steps(CONNECTION_REFUSED_STEPS)
	elif isinstance(err, httpx.TimeoutException):
		print("Error: Request timed out")
		_print_steps(TIMEOUT_STEPS)
	elif isinstance(err, httpx.HTTPStatusError):
		print(f"Error: {err}")
		print(f"\nResponse Status: {err.response.status_code}")
		try:
			body: Any = err.response.json()
		except ValueError:
			body = err.response.text
		print(f"Response Data: {json.dumps(body, indent=2)}")
	else:
		print(f"Error: {err}")


async def check_connection(client: LMStudioClient) -> bool:
	print("🔌 Testing LM Studio Connection...\n")
	print(f"API URL: {client.api_url}")
	print(f"Model: {client.model}\n")
	print("⏳ Sending test request...\n")
	try:
		data = await client.complete(
			[{"role": "user", "content": "Hello! Please respond with a simple greeting."}],
			temperature=0.7,
			max_tokens=50,
			timeout=CONNECT_TIMEOUT,
		)
	except Exception as err:
		report_error(err)
		return False

	content = response_content(data)
	if not content:
		print("❌ FAILED: Received response but no content")
		print(f"Response structure: {json.dumps(data, indent=2)}")
		return False

	print("✅ SUCCESS! LM Studio is responding correctly.\n")
	print("Response from AI:")
	print(RULE)
	print(content)
	print(RULE)
	print("\n🎉 Your LM Studio is ready for AI evaluation!")
	usage = data.get("usage") if isinstance(data, dict) else None
	if usage:
		print("\n📊 Token Usage:")
		print(f"   Prompt: {usage.get('prompt_tokens')}")
		print(f"   Completion: {usage.get('completion_tokens')}")
		print(f"   Total: {usage.get('total_tokens')}")
	return True


async def check_evaluation(client: LMStudioClient) -> Optional[dict]:
	print("\n\n🧪 Testing Evaluation Scenario...\n")
	print("⏳ Sending evaluation test...\n")
	try:
		data = await client.complete(
			[
				{"role": "system", "content": "You are an expert teacher. Always respond with valid JSON."},
				{"role": "user", "content": EVALUATION_PROMPT},
			],
			temperature=0.3,
			max_tokens=200,
			timeout=EVALUATION_TIMEOUT,
		)
	except Exception as err:
		print(f"❌ Evaluation test failed: {err}")
		return None

	content = response_content(data)
	if not content:
		print("⚠️  Evaluation request returned no content")
		return None

	print("✅ Evaluation Response Received:\n")
	print(RULE)
	print(content)
	print(RULE)

	parsed = extract_json_object(content)
	if parsed is None:
		print("\n⚠️  Could not find valid JSON in response")
		print("   But the AI is responding - evaluation may still work")
		return None
	print("\n✅ Successfully parsed evaluation JSON:")
	print(f"   Marks: {parsed.get('marksObtained')}/5")
	print(f"   Feedback: {parsed.get('feedback')}")
	print(f"   Reasoning: {parsed.get('reasoning')}")
	print("\n🎉 AI evaluation is working correctly!")
	return parsed


async def run_all(client: LMStudioClient) -> bool:
	print("╔═══════════════════════════════════════════════════════════╗")
	print("║        LM Studio Connection & Evaluation Test             ║")
	print("╚═══════════════════════════════════════════════════════════╝\n")

	connected = await check_connection(client)
	if connected:
		await check_evaluation(client)

	print("\n" + "═" * 60)
	print("\n✨ Testing Complete!\n")
	if connected:
		print("Next Steps:")
		print("1. ✅ LM Studio is ready")
		print("2. 📝 Create questions with correct answers in your app")
		print("3. 👨‍🎓 Have students submit their test answers")
		print("4. 🤖 Use the AI evaluation endpoint to grade submissions")
		print("\nAPI Endpoint: POST /evaluations")
	else:
		print("⚠️  Please fix LM Studio connection before proceeding")
	return connected


async def _run(url: Optional[str], model: Optional[str]) -> bool:
	client = LMStudioClient(url, model=model)
	try:
		return await run_all(client)
	finally:
		await client.aclose()


def main(argv: Optional[List[str]] = None) -> int:
	p = argparse.ArgumentParser(description="Check that the LM Studio server can grade answers.")
	p.add_argument("--url", default=None, help="chat completions URL (defaults to LM_STUDIO_API_URL)")
	p.add_argument("--model", default=None, help="model name (defaults to LM_STUDIO_MODEL)")
	args = p.parse_args(argv)
	return 0 if asyncio.run(_run(args.url, args.model)) else 1


if __name__ == "__main__":
	raise SystemExit(main())
