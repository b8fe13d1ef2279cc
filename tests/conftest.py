"""
Pytest fixtures shared by the bill helper tests.

Provides:
- An isolated action-log database per test
- A disconnected cloud service per test
- A scripted replacement for input()
"""

from pathlib import Path

import pytest

import database
from cloud_setup import cloud_service

TARIFF_DIR = Path(__file__).resolve().parent.parent / "tariffs"
SAMPLE_TARIFF = TARIFF_DIR / "lt_a_residential.json"

FIREBASE_SNIPPET = '''// Import the functions you need from the SDKs you need
import { initializeApp } from "firebase/app";

// Your web app's Firebase configuration
const firebaseConfig = {
  apiKey: "AIzaSyD-example-key",
  authDomain: "bill-helper-demo.firebaseapp.com",
  projectId: "bill-helper-demo",
  storageBucket: "bill-helper-demo.appspot.com",
  messagingSenderId: "123456789012",
  appId: "1:123456789012:web:abc123def456"
};'''


@pytest.fixture(autouse=True)
def temp_db(tmp_path, monkeypatch):
    """Point the action log at a fresh SQLite file."""
    db_file = tmp_path / "test_bill_helper.db"
    monkeypatch.setattr(database, "DB_FILE", str(db_file))
    database.setup_database()
    return db_file


@pytest.fixture(autouse=True)
def reset_cloud_service():
    cloud_service.disconnect()
    yield
    cloud_service.disconnect()


@pytest.fixture
def feed_input(monkeypatch):
    """Replace input() with a scripted sequence of answers."""
    def _feed(answers):
        answers = iter(answers)
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    return _feed
