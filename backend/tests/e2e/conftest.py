"""
E2E test fixtures and configuration

These tests verify the full application pipeline:
- Server startup and API endpoints
- Catalog, prerequisite, requirement and history reads from Firestore
- Allocation, audit and response serialization
- Redis plan cache wiring

Run e2e tests with: pytest tests/e2e -m e2e
"""

import pytest
import sys
import time
from pathlib import Path
from contextlib import contextmanager
from unittest.mock import MagicMock

# Add backend to path for imports
backend_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_dir))


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "e2e: marks tests as end-to-end tests (full pipeline)"
    )


class Timer:
    """Simple timer for measuring execution time"""

    def __init__(self):
        self.start_time = None
        self.end_time = None
        self.elapsed_ms = None

    def start(self):
        self.start_time = time.perf_counter()
        return self

    def stop(self):
        self.end_time = time.perf_counter()
        self.elapsed_ms = (self.end_time - self.start_time) * 1000
        return self.elapsed_ms

    @contextmanager
    def measure(self, label: str = ""):
        """Context manager for timing a block of code"""
        self.start()
        yield self
        elapsed = self.stop()
        if label:
            print(f"\n  [{label}] {elapsed:.2f}ms")


class FakeFirestore:
    """
    Firestore stand-in keyed by collection name.

    Each collection is a MagicMock whose stream() and where().stream()
    return the documents loaded with load(); document(id).get() returns
    the document loaded with load_document(), or a missing document.
    """

    def __init__(self):
        self.collections = {}
        self.documents = {}
        self.db = MagicMock()
        self.db.collection.side_effect = self._collection

    def _collection(self, name):
        if name not in self.collections:
            self.collections[name] = self._empty_collection(name)
        return self.collections[name]

    def _empty_collection(self, name):
        collection = MagicMock()
        collection.stream.return_value = []
        collection.where.return_value.stream.return_value = []
        collection.document.side_effect = lambda doc_id: self._document_ref(name, doc_id)
        return collection

    def _document_ref(self, name, doc_id):
        ref = MagicMock()
        ref.get.return_value = self.documents.get((name, doc_id)) or self.doc(None, doc_id, exists=False)
        return ref

    @staticmethod
    def doc(data, doc_id="doc", exists=True):
        doc = MagicMock()
        doc.id = doc_id
        doc.exists = exists
        doc.to_dict.return_value = data
        return doc

    def load(self, name, records):
        """Serve records from stream() and where().stream()"""
        collection = self._collection(name)
        docs = [self.doc(r, r.get("courseCode") or r.get("course_code") or "doc") for r in records]
        collection.stream.return_value = docs
        collection.where.return_value.stream.return_value = docs

    def load_document(self, name, doc_id, data):
        """Serve a single document from document(doc_id).get()"""
        self.documents[(name, doc_id)] = self.doc(data, doc_id)

    def fail(self, name, error=None):
        """Make every read of a collection raise"""
        collection = self._collection(name)
        error = error or Exception(f"{name} unavailable")
        collection.stream.side_effect = error
        collection.where.return_value.stream.side_effect = error

    def reset(self):
        self.collections.clear()
        self.documents.clear()


@pytest.fixture(scope="module")
def fake_firestore():
    """One Firestore stand-in shared by the app for a test module"""
    return FakeFirestore()


@pytest.fixture
def timer():
    """Provide a timer instance for tests"""
    return Timer()


@pytest.fixture
def timed_request(timer):
    """Factory for making timed HTTP requests"""
    def _timed_request(client, method: str, url: str, **kwargs):
        timer.start()
        if method.upper() == "GET":
            response = client.get(url, **kwargs)
        elif method.upper() == "POST":
            response = client.post(url, **kwargs)
        elif method.upper() == "OPTIONS":
            response = client.options(url, **kwargs)
        else:
            raise ValueError(f"Unsupported method: {method}")
        elapsed = timer.stop()
        print(f"\n  [{method.upper()} {url}] {elapsed:.2f}ms - Status: {response.status_code}")
        return response, elapsed
    return _timed_request


@pytest.fixture
def backend_root():
    """Return the backend root directory"""
    return Path(__file__).parent.parent.parent


@pytest.fixture
def sample_courses():
    """Catalog documents for a short prerequisite chain"""
    return [
        {
            "course_code": "CSCI 141",
            "subject_code": "CSCI",
            "title": "Computational Problem Solving",
            "credits": 4,
            "sections": [
                {"crn": "12345", "instructor": "Smith, John", "meeting_days": "MWF", "meeting_time": "10:00-10:50am"}
            ]
        },
        {
            "course_code": "CSCI 241",
            "subject_code": "CSCI",
            "title": "Data Structures",
            "credits": 3,
            "sections": [
                {"crn": "22345", "instructor": "Jones, Jane", "meeting_days": "TR", "meeting_time": "11:00-12:20pm"}
            ]
        },
        {
            "course_code": "CSCI 303",
            "subject_code": "CSCI",
            "title": "Algorithms",
            "credits": 3,
            "sections": [
                {"crn": "32345", "instructor": "Smith, John", "meeting_days": "MWF", "meeting_time": "11:00-11:50am"}
            ]
        },
        {
            "course_code": "MATH 111",
            "subject_code": "MATH",
            "title": "Calculus I",
            "credits": 4,
            "sections": [
                {"crn": "42345", "instructor": "Lee, Ann", "meeting_days": "MWF", "meeting_time": "9:00-9:50am"}
            ]
        },
    ]


@pytest.fixture
def sample_prerequisites():
    """Prerequisite documents for sample_courses"""
    return [
        {"courseCode": "CSCI 241", "prerequisiteType": "single", "prerequisiteCourses": ["CSCI 141"]},
        {"courseCode": "CSCI 303", "prerequisiteType": "and", "prerequisiteCourses": ["CSCI 241", "MATH 111"]},
    ]


@pytest.fixture
def sample_requirements():
    """Requirement document for the Computer Science program"""
    return {
        "categories": [
            {
                "name": "Computer Science Core",
                "requiredHours": 10,
                "availableClasses": [
                    {"code": "CSCI 141", "hours": 4, "required": True},
                    {"code": "CSCI 241", "hours": 3, "required": True},
                    {"code": "CSCI 303", "hours": 3, "required": True},
                ]
            },
            {
                "name": "Mathematics",
                "requiredHours": 4,
                "minCourses": 1,
                "availableClasses": [{"code": "MATH 111", "hours": 4}]
            }
        ]
    }
