import json
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from ats_engine.main import create_app
from ats_engine.services.store import Store


def fenced(data: Any) -> str:
    return f"Here is the analysis:\n```json\n{json.dumps(data)}\n```\nGood luck!"


class FakeModel:
    """Stands in for the model gateway; answers are consumed in order, the last one repeats."""

    def __init__(self, *answers: Any) -> None:
        self.answers = list(answers)
        self.prompts: List[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.answers[0] if len(self.answers) == 1 else self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, str):
            return answer
        return fenced(answer)

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def sample_resume() -> Dict[str, Any]:
    return {
        "basics": {
            "name": "Ada Lovelace",
            "label": "Backend Engineer",
            "email": "ada@example.com",
            "summary": "Engineer focused on data-heavy services.",
            "location": {"city": "London", "countryCode": "GB"},
            "profiles": [{"network": "GitHub", "url": "https://github.com/ada"}],
        },
        "work": [
            {
                "name": "Analytical Engines Ltd",
                "position": "Senior Engineer",
                "startDate": "2020-01",
                "highlights": ["Cut report latency by 40%", "Led a team of 4"],
            },
            {
                "name": "Difference Co",
                "position": "Engineer",
                "startDate": "2017-03",
                "endDate": "2019-12",
                "summary": "Built billing pipelines.",
            },
        ],
        "education": [
            {"institution": "University of London", "area": "Mathematics", "studyType": "BSc"},
        ],
        "skills": [
            {"name": "Backend", "keywords": ["Python", "FastAPI", "PostgreSQL"]},
            {"name": "Ops", "keywords": ["Docker"]},
        ],
        "languages": [{"language": "English", "fluency": "Native"}],
    }


@pytest.fixture
def ats_answer() -> Dict[str, Any]:
    return {
        "atsScore": 70,
        "scoreBreakdown": {
            "technicalSkills": 80,
            "experienceRelevance": 70,
            "additionalSkills": 60,
            "formatting": 70,
        },
        "matchedKeywords": ["Python", "FastAPI"],
        "missingKeywords": [
            {"keyword": "Kubernetes", "priority": "high", "context": "Required for deployment"},
            {"keyword": "GraphQL", "priority": "low", "context": "Nice to have"},
        ],
        "matchedSkills": ["Python", "Docker", "PostgreSQL"],
        "missingSkills": ["Kubernetes"],
        "formattingIssues": ["Dates use mixed formats"],
        "recommendations": [
            "Add Kubernetes experience if you have any",
            "Use consistent date formats",
        ],
        "actionableFeedback": [
            {"priority": "low", "action": "Shorten the summary", "impact": "Readability"},
            {"priority": "high", "action": "Mention Kubernetes", "impact": "Passes keyword filter"},
        ],
        "sectionScores": {"work": 80, "education": 70, "skills": 75},
        "gapAnalysis": {"summary": "Strong backend profile, light on orchestration."},
        "lengthAnalysis": {"pageCount": 1, "wordCount": 420, "isOptimal": True, "score": 90},
    }


@pytest.fixture
def detailed_answer() -> Dict[str, Any]:
    return {
        "impactQuantification": {
            "checkName": "Impact quantification",
            "score": 80,
            "issues": ["Only one bullet has a metric"],
            "suggestions": ["Add numbers to more bullets"],
            "status": "warning",
            "priority": "high",
        },
        "grammar": {
            "checkName": "Grammar",
            "issues": [],
            "suggestions": [],
            "status": "pass",
            "priority": "low",
        },
    }


@pytest.fixture
def store() -> Store:
    return Store()


@pytest.fixture
def fake_model(ats_answer) -> FakeModel:
    return FakeModel(ats_answer)


@pytest.fixture
def app(store, fake_model):
    return create_app(store=store, generate=fake_model)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def drain(app, client):
    """Block until every background analysis spawned through ``client`` has finished."""

    def _drain() -> None:
        client.portal.call(app.state.manager.drain)

    return _drain
