import httpx

from smart_assessment.lmstudio_client import LMStudioClient
from smart_assessment.main import app
from smart_assessment.routers.evaluations import get_llm_client

ITEM = {
    "question_text": "Name the powerhouse of the cell.",
    "correct_answer": "Mitochondria",
    "student_answer": "mitochondria",
    "max_marks": 2,
}


def use_llm_reply(content):
    def handler(request: httpx.Request):
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    async def override():
        client = LMStudioClient("http://lm.test/v1/chat/completions", transport=httpx.MockTransport(handler))
        try:
            yield client
        finally:
            await client.aclose()

    app.dependency_overrides[get_llm_client] = override


def test_teacher_can_evaluate(client, teacher_headers):
    use_llm_reply('{"marksObtained": 2, "feedback": "Correct", "reasoning": "Exact match"}')
    response = client.post("/evaluations", json=ITEM, headers=teacher_headers)
    assert response.status_code == 200
    assert response.json() == {"marks_obtained": 2, "feedback": "Correct", "evaluation_details": "Exact match"}


def test_student_cannot_evaluate(client, student_headers):
    use_llm_reply("{}")
    response = client.post("/evaluations", json=ITEM, headers=student_headers)
    assert response.status_code == 403


def test_invalid_max_marks(client, admin_headers):
    use_llm_reply("{}")
    response = client.post("/evaluations", json={**ITEM, "max_marks": 0}, headers=admin_headers)
    assert response.status_code == 422


def test_batch(client, admin_headers):
    use_llm_reply('{"marksObtained": 1.5}')
    response = client.post("/evaluations/batch", json={"items": [ITEM, ITEM]}, headers=admin_headers)
    assert response.status_code == 200
    assert [r["marks_obtained"] for r in response.json()] == [1.5, 1.5]


def test_empty_batch(client, admin_headers):
    use_llm_reply("{}")
    response = client.post("/evaluations/batch", json={"items": []}, headers=admin_headers)
    assert response.status_code == 400
