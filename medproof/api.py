"""
MedProof HTTP service.

Thin FastAPI adapter over the commitment engine, proof generator and
verifier. Salts are generated server-side and never returned. Stores and
keys are injected through create_app; the module-level `app` is built
from environment configuration.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from . import __version__
from .commitment import StudyCommitmentGenerator
from .config import DB_PATH, ENV, SIGNING_KEY_PATH, default_thresholds, is_production, validate_config
from .errors import MedProofError
from .generator import MedicalProofGenerator
from .insights import research_insights
from .logging_config import set_request_id
from .models import HealthResponse, ProofList, ProofRequest, VerificationResponse
from .signing import ProverKey
from .stats import MedicalStats, ProofThresholds, generate_salt
from .stores import (
    CommitmentStore,
    InMemoryCommitmentStore,
    InMemoryProofStore,
    ProofStore,
    SqliteCommitmentStore,
    SqliteProofStore,
)
from .verifier import ProofVerifier

logger = logging.getLogger(__name__)


def create_app(
    commitment_store: Optional[CommitmentStore] = None,
    proof_store: Optional[ProofStore] = None,
    prover_key: Optional[ProverKey] = None,
    trust_store: Optional[Dict[str, Any]] = None
) -> FastAPI:
    """
    Build the service.

    With a prover key and no explicit trust store, the service verifies
    against its own key.
    """
    if commitment_store is None:
        commitment_store = InMemoryCommitmentStore()
    if proof_store is None:
        proof_store = InMemoryProofStore()
    if trust_store is None and prover_key is not None:
        trust_store = prover_key.trust_store()

    verifier = ProofVerifier(trust_store)
    generator = MedicalProofGenerator(verifier=verifier, prover_key=prover_key)
    commitments = StudyCommitmentGenerator()

    app = FastAPI(
        title="MedProof Statistical Disclosure Service",
        version=__version__,
        docs_url=None if is_production() else "/docs",
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(MedProofError)
    async def medproof_error_handler(request: Request, exc: MedProofError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=422, content=exc.to_dict())

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="ok",
            env=ENV,
            version=__version__,
            stored_proofs=len(proof_store.list_hashes()),
        )

    @app.post("/studies/commitment")
    def study_commitment(protocol: Dict[str, Any] = Body(...)):
        record = commitments.generate_commitment(protocol)
        commitment_store.put(record)
        return record.to_dict()

    @app.get("/studies/commitment/{commitment}")
    def get_study_commitment(commitment: str):
        record = commitment_store.get(commitment)
        if not record:
            raise HTTPException(404, "NOT_FOUND")
        return record.to_dict()

    @app.post("/proofs")
    def create_proof(req: ProofRequest):
        stats = MedicalStats.from_dict(req.stats)
        thresholds = (
            ProofThresholds.from_dict(req.thresholds)
            if req.thresholds is not None else default_thresholds()
        )
        proof = generator.generate_proof(stats, generate_salt(), thresholds)
        proof_store.put(proof)

        body = proof.to_dict()
        body["researchInsights"] = research_insights(stats)
        return body

    @app.post("/proofs/verify", response_model=VerificationResponse, response_model_exclude_none=True)
    def verify(proof: Any = Body(...)):
        return verifier.verify(proof).to_dict()

    @app.get("/proofs", response_model=ProofList)
    def list_proofs():
        return ProofList(proof_hashes=proof_store.list_hashes())

    @app.get("/proofs/{proof_hash}")
    def get_proof(proof_hash: str):
        proof = proof_store.get(proof_hash)
        if not proof:
            raise HTTPException(404, "NOT_FOUND")
        return proof.to_dict()

    return app


def app_from_env() -> FastAPI:
    """Service wired from MEDPROOF_* environment variables."""
    for name, exists in validate_config().items():
        if not exists:
            logger.warning("Configured path for %s does not exist", name)
    if DB_PATH:
        commitment_store = SqliteCommitmentStore(DB_PATH)
        proof_store = SqliteProofStore(DB_PATH)
    else:
        commitment_store = InMemoryCommitmentStore()
        proof_store = InMemoryProofStore()
    prover_key = ProverKey.load(SIGNING_KEY_PATH) if SIGNING_KEY_PATH else None
    return create_app(commitment_store, proof_store, prover_key)


app = app_from_env()
