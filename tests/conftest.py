import os
import sys
from pathlib import Path

# Must be set before importing shl_recommender.config: tests never load a
# sentence model and never call Gemini, even if the machine has keys set.
os.environ["ENCODER_BACKEND"] = "hash"
os.environ["GEMINI_API_KEY"] = ""
os.environ["ENABLE_NARRATIVE"] = "0"

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from shl_recommender.models import AssessmentRecord, ScoredAssessment, TestType


def make_record(name: str, test_type: TestType, description: str = "", category: str = "") -> AssessmentRecord:
    slug = name.lower().replace(" ", "-")
    return AssessmentRecord(
        name=name,
        url=f"https://www.shl.com/solutions/products/product-catalog/view/{slug}/",
        description=description or f"{name} assessment",
        category=category,
        test_type=test_type,
    )


def make_scored(name: str, test_type: TestType, similarity: float) -> ScoredAssessment:
    return ScoredAssessment(make_record(name, test_type), similarity)


@pytest.fixture()
def sample_records():
    """A small catalogue with every test type represented."""
    knowledge = [
        ("Java 8 (New)", "Multi-choice test of Java class design, exceptions and generics"),
        ("Core Java (Advanced Level)", "Advanced Java programming knowledge for senior developers"),
        ("Python (New)", "Python programming test covering data structures and libraries"),
        ("SQL Server (New)", "Queries, joins, indexing and stored procedures"),
        ("JavaScript (New)", "Front-end scripting, DOM manipulation and async code"),
        ("Verify - Numerical Ability", "Numerical reasoning for graduate and professional roles"),
        ("Verify - Verbal Ability", "Verbal reasoning and reading comprehension"),
        ("Verify - Inductive Reasoning", "Abstract problem solving with patterns"),
        ("Automata - Fix (New)", "Coding simulation: debug and fix a program"),
        ("C++ Programming (New)", "Pointers, templates and the standard library"),
        (".NET Framework 4.5", "C# and .NET framework knowledge"),
        ("Technology Professional 8.0 Job Focused Assessment", "Technical skills and cognitive ability for IT roles"),
    ]
    personality = [
        ("Occupational Personality Questionnaire OPQ32r", "Workplace personality and behavioral style"),
        ("Motivation Questionnaire MQM5", "What energizes and motivates an employee"),
        ("Enterprise Leadership Report", "Leadership potential from personality data"),
        ("Teamwork Situational Judgement", "How candidates collaborate in team settings"),
        ("Sales Interview Guide", "Competency based interview for communication in sales"),
        ("Global Skills Assessment", "Behavioral competencies across roles"),
        ("Customer Service Phone Simulation", "Handling calls with empathy"),
        ("Manager 8.0 Job Focused Assessment", "Personality and judgement for managers"),
    ]
    other = [
        ("Assessment and Development Center Exercises", "Group exercises and role plays"),
        ("360 Digital Report", "Multi-rater feedback report"),
        ("Workplace Health and Safety", "Safety awareness for frontline staff"),
        ("Virtual Assessment Center", "Online assessment center delivery"),
    ]
    records = [make_record(n, TestType.KNOWLEDGE, d, "Knowledge & Skills") for n, d in knowledge]
    records += [make_record(n, TestType.PERSONALITY, d, "Personality & Behavior") for n, d in personality]
    records += [make_record(n, TestType.OTHER, d, "Assessment Exercises") for n, d in other]
    return records


@pytest.fixture()
def hash_encoder():
    from shl_recommender.embeddings import VectorEncoder

    encoder = VectorEncoder(backend="hash")
    encoder.initialize()
    return encoder


@pytest.fixture()
def store(hash_encoder, sample_records):
    from shl_recommender.embedding_store import EmbeddingStore

    s = EmbeddingStore(encoder=hash_encoder)
    s.populate(sample_records)
    return s


@pytest.fixture()
def orchestrator(store):
    from shl_recommender.workflow_graph import WorkflowOrchestrator

    return WorkflowOrchestrator(store=store, narrator=None)


@pytest.fixture()
def client(orchestrator):
    """
    TestClient wired to an orchestrator over the sample catalogue.

    Startup sees an orchestrator already in place and only makes sure its
    store is ready, so no file under data/ is read.
    """
    from fastapi.testclient import TestClient
    from shl_recommender import api

    api.app_state.orchestrator = orchestrator
    try:
        with TestClient(api.app) as c:
            yield c
    finally:
        api.app_state.orchestrator = None
