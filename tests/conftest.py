import json
import os

import pytest
from fastapi.testclient import TestClient

from medproof import InMemoryCommitmentStore, InMemoryProofStore, MedicalStats, ProverKey
from medproof.api import create_app

FIXTURES = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")


def load_fixture(name):
    with open(os.path.join(FIXTURES, name), "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def catalog_protocol():
    return load_fixture("protocol_diabetes.json")


@pytest.fixture
def scenario_stats_json():
    return load_fixture("stats_efficacy.json")


@pytest.fixture
def scenario_stats(scenario_stats_json):
    return MedicalStats.from_dict(scenario_stats_json)


@pytest.fixture
def prover_key():
    return ProverKey.generate("kid:test-hospital")


@pytest.fixture
def client():
    app = create_app(InMemoryCommitmentStore(), InMemoryProofStore())
    return TestClient(app)


@pytest.fixture
def attested_client(prover_key):
    app = create_app(InMemoryCommitmentStore(), InMemoryProofStore(), prover_key=prover_key)
    return TestClient(app)
