#!/usr/bin/env python3
"""
MedProof Command Line Interface

Usage:
    medproof commit --file <protocol.json>
    medproof prove --stats <stats.json> [--thresholds <file>] [--key <file>] [--output <file>]
    medproof verify --proof <proof.json> [--trust-store <file>]
    medproof keygen --output <key.json> [--trust-store <file>]
    medproof demo
"""

import argparse
import json
import sys
from datetime import datetime

from .config import LOG_FILE, LOG_JSON, LOG_LEVEL, is_debug
from .logging_config import configure_logging


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: dict, path: str):
    """Save JSON to file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


def cmd_commit(args):
    """Compute the commitment of a study protocol."""
    from medproof import InvalidProtocol, StudyCommitmentGenerator

    try:
        record = StudyCommitmentGenerator().generate_commitment(load_json(args.file))
    except InvalidProtocol as e:
        print(f"✗ Invalid protocol: {e}", file=sys.stderr)
        return 2

    if args.verbose:
        print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(record.commitment)
    return 0


def cmd_prove(args):
    """Generate a proof from private statistics."""
    from medproof import (
        InvalidStats,
        MedicalProofGenerator,
        ProofThresholds,
        ProverKey,
        generate_salt,
    )
    from medproof.config import default_thresholds

    prover_key = ProverKey.load(args.key) if args.key else None
    salt = generate_salt()

    try:
        thresholds = (
            ProofThresholds.from_dict(load_json(args.thresholds))
            if args.thresholds else default_thresholds()
        )
        proof = MedicalProofGenerator(prover_key=prover_key).generate_proof(
            load_json(args.stats), salt, thresholds
        )
    except InvalidStats as e:
        print(f"✗ Invalid statistics: {e}", file=sys.stderr)
        return 2

    if args.salt_output:
        # The salt opens the data commitment; keep it with the private data.
        save_json({"salt": str(salt), "dataCommitment": proof.data_commitment}, args.salt_output)

    if args.output:
        save_json(proof.to_dict(), args.output)
        print(f"Proof saved to: {args.output}")
    else:
        print(json.dumps(proof.to_dict(), indent=2))

    if proof.overall_valid:
        print(f"\n✓ Thresholds met (proof {proof.proof_hash[:16]}...)", file=sys.stderr)
        return 0
    print(f"\n✗ Thresholds not met (proof {proof.proof_hash[:16]}...)", file=sys.stderr)
    return 1


def cmd_verify(args):
    """Verify a proof."""
    from medproof import verify_proof

    proof = load_json(args.proof)
    trust_store = load_json(args.trust_store) if args.trust_store else None

    result = verify_proof(proof, trust_store)

    if result.valid:
        print(f"✓ VALID ({result.method})")
        return 0
    print(f"✗ INVALID: {result.error}")
    if result.details:
        print(json.dumps(result.details, indent=2))
    return 1


def cmd_keygen(args):
    """Generate an Ed25519 prover key."""
    from medproof import ProverKey

    kid = args.key_id or f"kid:medproof-{datetime.now().strftime('%Y%m%d')}-001"
    key = ProverKey.generate(kid)
    key.save(args.output)
    print(f"Signing key saved to: {args.output}")

    if args.trust_store:
        save_json(key.trust_store(), args.trust_store)
        print(f"Trust store saved to: {args.trust_store}")
    else:
        print(json.dumps(key.trust_store(), indent=2))

    print(f"\nGenerated key: {kid}", file=sys.stderr)
    return 0


def cmd_demo(args):
    """Run a demonstration of MedProof."""
    from medproof import (
        MedicalProofGenerator,
        ProofThresholds,
        ProverKey,
        StudyCommitmentGenerator,
        generate_salt,
        research_insights,
        MedicalStats,
    )

    print("=" * 60)
    print("MedProof Demonstration")
    print("=" * 60)

    protocol = {
        "studyId": "diabetes-metformin-elderly-2024",
        "metadata": {
            "condition": {"code": "E11", "display": "Type 2 Diabetes"},
            "treatment": {"code": "metformin", "display": "Metformin"},
            "comparator": {"code": "placebo", "display": "Placebo"},
        },
        "protocol": {
            "inclusionCriteria": {"ageRange": {"min": 65, "max": 85}, "gender": "all"},
            "primaryEndpoint": {"measure": "HbA1c reduction", "timepoint": "6 months"},
            "duration": "6 months",
        },
    }
    record = StudyCommitmentGenerator().generate_commitment(protocol)
    print(f"\nStudy: {record.study_id}")
    print(f"Commitment: {record.commitment}")

    key = ProverKey.generate("kid:medproof-demo")
    generator = MedicalProofGenerator(prover_key=key)
    thresholds = ProofThresholds()

    # Scenario 1: thresholds met
    print("\n" + "-" * 60)
    print("Scenario 1: Large cohort, strong effect")
    print("-" * 60)

    stats1 = MedicalStats(
        patient_count=1670,
        treatment_success=1303,
        control_success=90,
        control_count=200,
        p_value=0.001,
    )
    proof1 = generator.generate_proof(stats1, generate_salt(), thresholds)
    print(f"Public signals: {list(proof1.public_signals)}")
    print(f"Overall valid: {proof1.overall_valid}  Verified: {proof1.metadata.verified}")
    insights = research_insights(stats1)
    print(f"  Sample size: {insights['studyCharacteristics']['sampleSize']}")
    print(f"  Improvement: {insights['treatmentEfficacy']['absoluteImprovement']}")

    # Scenario 2: too few patients
    print("\n" + "-" * 60)
    print("Scenario 2: Cohort below minimum size")
    print("-" * 60)

    stats2 = MedicalStats(
        patient_count=50,
        treatment_success=40,
        control_success=8,
        control_count=20,
        p_value=0.001,
    )
    proof2 = generator.generate_proof(stats2, generate_salt(), thresholds)
    print(f"Public signals: {list(proof2.public_signals)}")
    print(f"Overall valid: {proof2.overall_valid}  Verified: {proof2.metadata.verified}")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="medproof",
        description="MedProof statistical disclosure CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  medproof demo                           Run demonstration
  medproof commit -f protocol.json
  medproof prove -s stats.json -o proof.json
  medproof verify -p proof.json -k trust_store.json
  medproof keygen -o prover_key.json -t trust_store.json
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # commit
    commit_parser = subparsers.add_parser("commit", help="Compute study commitment")
    commit_parser.add_argument("-f", "--file", required=True, help="Study protocol JSON file")
    commit_parser.add_argument("-v", "--verbose", action="store_true", help="Print canonical study")

    # prove
    prove_parser = subparsers.add_parser("prove", help="Generate disclosure proof")
    prove_parser.add_argument("-s", "--stats", required=True, help="Medical statistics JSON file")
    prove_parser.add_argument("-t", "--thresholds", help="Thresholds JSON file")
    prove_parser.add_argument("-K", "--key", help="Prover signing key JSON file")
    prove_parser.add_argument("-o", "--output", help="Output file for proof")
    prove_parser.add_argument("--salt-output", help="Output file for the commitment salt")

    # verify
    verify_parser = subparsers.add_parser("verify", help="Verify disclosure proof")
    verify_parser.add_argument("-p", "--proof", required=True, help="Proof JSON file")
    verify_parser.add_argument("-k", "--trust-store", help="Trust store JSON file with prover keys")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate prover signing key")
    keygen_parser.add_argument("-o", "--output", required=True, help="Output file for signing key")
    keygen_parser.add_argument("-t", "--trust-store", help="Output file for trust store")
    keygen_parser.add_argument("-k", "--key-id", help="Key identifier")

    # demo
    subparsers.add_parser("demo", help="Run demonstration")

    args = parser.parse_args(argv)

    configure_logging("DEBUG" if is_debug() else LOG_LEVEL, json_format=LOG_JSON, log_file=LOG_FILE, stream=sys.stderr)

    commands = {
        "commit": cmd_commit,
        "prove": cmd_prove,
        "verify": cmd_verify,
        "keygen": cmd_keygen,
        "demo": cmd_demo,
    }
    if args.command not in commands:
        parser.print_help()
        return 0
    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
