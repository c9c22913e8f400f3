"""
MedProof Proof Generation and Verification Tests

Round trip of validity, negative cases, the worked efficacy scenarios,
salt independence, research insights and batch verification.
"""

import json
import unittest

from medproof import (
    InvalidStats,
    MedicalProofGenerator,
    MedicalStats,
    Proof,
    ProofThresholds,
    ProofVerifier,
    ProverKey,
    data_commitment,
    generate_proof,
    generate_salt,
    proof_hash,
    research_insights,
    verify_batch,
    verify_proof,
)
from medproof.verifier import METHOD_ATTESTED, METHOD_PLACEHOLDER

SCENARIO_STATS = {
    "patientCount": 1670,
    "treatmentSuccess": 1303,
    "controlSuccess": 428,
    "controlCount": 823,
    "pValue": 0.0001,
}

THRESHOLDS = ProofThresholds(min_patients=100, min_efficacy_rate_percent=70, max_p_value_scaled=500)


def passing_stats(**overrides):
    values = dict(
        patient_count=400,
        treatment_success=320,
        control_success=80,
        control_count=200,
        p_value=0.003,
    )
    values.update(overrides)
    return MedicalStats(**values)


class TestScenarios(unittest.TestCase):
    """Worked efficacy scenarios."""

    def test_large_cohort_meets_thresholds(self):
        proof = generate_proof(SCENARIO_STATS, generate_salt(), THRESHOLDS)

        self.assertEqual(proof.metadata.efficacy_rate, 78)
        self.assertEqual(proof.overall_valid, 1)
        self.assertEqual(list(proof.public_signals[:3]), [100, 70, 500])
        self.assertEqual(list(proof.public_signals[4:]), [1, 1, 1, 1])
        self.assertTrue(verify_proof(proof).valid)

    def test_small_cohort_fails_sample_size(self):
        stats = dict(SCENARIO_STATS, patientCount=50)
        proof = generate_proof(stats, generate_salt(), THRESHOLDS)

        self.assertEqual(proof.valid_sample_size, 0)
        self.assertEqual(proof.overall_valid, 0)
        self.assertEqual(proof.metadata.sample_size, 50)

    def test_failed_thresholds_still_verify(self):
        # An honest proof that reports failure is a valid proof of failure.
        stats = dict(SCENARIO_STATS, patientCount=50)
        proof = generate_proof(stats, generate_salt(), THRESHOLDS)
        self.assertTrue(proof.metadata.verified)
        self.assertTrue(verify_proof(proof.to_dict()).valid)


class TestRoundTrip(unittest.TestCase):
    """Proofs over passing statistics verify."""

    def test_round_trip_across_inputs(self):
        samples = [
            passing_stats(),
            passing_stats(patient_count=100, treatment_success=70),
            passing_stats(p_value=0.0499),
            passing_stats(patient_count=5000, treatment_success=4999, p_value=0.0),
        ]
        for stats in samples:
            with self.subTest(stats=stats):
                proof = generate_proof(stats, generate_salt(), THRESHOLDS)
                self.assertEqual(proof.public_signals[7], 1)
                self.assertTrue(verify_proof(proof).valid)

    def test_json_round_trip(self):
        proof = generate_proof(passing_stats(), generate_salt(), THRESHOLDS)
        wire = json.loads(json.dumps(proof.to_dict()))

        result = verify_proof(wire)
        self.assertTrue(result.valid, result.error)
        self.assertEqual(result.method, METHOD_PLACEHOLDER)
        self.assertEqual(Proof.from_dict(wire), proof)

    def test_wire_shape(self):
        proof = generate_proof(passing_stats(), generate_salt(), THRESHOLDS).to_dict()

        self.assertEqual(set(proof), {"proof", "publicSignals", "metadata"})
        blob = proof["proof"]
        self.assertEqual(blob["protocol"], "groth16")
        self.assertEqual(blob["curve"], "bn128")
        self.assertEqual(len(blob["pi_a"]), 3)
        self.assertEqual(blob["pi_a"][2], "1")
        self.assertEqual(blob["pi_b"][2], ["1", "0"])
        self.assertEqual(blob["pi_c"][2], "1")
        self.assertTrue(all(e.startswith("0x") for e in blob["pi_a"][:2]))

        self.assertEqual(len(proof["publicSignals"]), 8)
        metadata = proof["metadata"]
        for key in ("studyType", "efficacyRate", "sampleSize", "pValue", "timestamp",
                    "proofHash", "verified", "verificationTimestamp"):
            self.assertIn(key, metadata)
        self.assertEqual(metadata["studyType"], "treatment-efficacy")
        self.assertTrue(metadata["verified"])
        self.assertIsNotNone(metadata["verificationTimestamp"])
        self.assertNotIn("attestation", metadata)

    def test_proof_hash_covers_blob(self):
        proof = generate_proof(passing_stats(), generate_salt(), THRESHOLDS)
        self.assertEqual(proof.proof_hash, proof_hash(proof.blob.to_dict()))

    def test_data_commitment_signal(self):
        stats = passing_stats()
        salt = generate_salt()
        proof = generate_proof(stats, salt, THRESHOLDS)
        self.assertEqual(proof.data_commitment, data_commitment(stats.commitment_values(), salt))

    def test_default_thresholds(self):
        proof = generate_proof(passing_stats(), generate_salt())
        self.assertEqual(len(proof.public_signals), 8)
        self.assertTrue(verify_proof(proof).valid)

    def test_thresholds_from_dict(self):
        proof = generate_proof(
            passing_stats(),
            generate_salt(),
            {"minPatients": 1000, "minEfficacyRatePercent": 50, "maxPValueScaled": 100},
        )
        self.assertEqual(list(proof.public_signals[:3]), [1000, 50, 100])
        self.assertEqual(proof.overall_valid, 0)
        self.assertTrue(verify_proof(proof).valid)


class TestNegativeCases(unittest.TestCase):
    """Statistics below thresholds produce zero flags, not errors."""

    def test_below_min_patients(self):
        proof = generate_proof(passing_stats(patient_count=99, treatment_success=79), generate_salt(), THRESHOLDS)
        self.assertEqual(proof.valid_sample_size, 0)
        self.assertEqual(proof.overall_valid, 0)
        self.assertEqual(proof.public_signals[5], 1)
        self.assertEqual(proof.public_signals[6], 1)

    def test_efficacy_below_threshold(self):
        proof = generate_proof(passing_stats(treatment_success=279), generate_salt(), THRESHOLDS)
        self.assertEqual(proof.metadata.efficacy_rate, 69)
        self.assertEqual(list(proof.public_signals[4:]), [1, 0, 1, 0])

    def test_not_significant(self):
        proof = generate_proof(passing_stats(p_value=0.05), generate_salt(), THRESHOLDS)
        self.assertEqual(list(proof.public_signals[4:]), [1, 1, 0, 0])
        self.assertTrue(verify_proof(proof).valid)

    def test_zero_patients(self):
        proof = generate_proof(
            passing_stats(patient_count=0, treatment_success=0, control_success=0, control_count=0),
            generate_salt(),
            THRESHOLDS,
        )
        self.assertEqual(proof.metadata.efficacy_rate, 0)
        self.assertEqual(proof.overall_valid, 0)

    def test_successes_exceed_cohort(self):
        stats = passing_stats(patient_count=100, treatment_success=5000, control_success=0, control_count=0)
        self.assertTrue(stats.successes_exceed_cohort)

        proof = generate_proof(stats, generate_salt(), THRESHOLDS)
        self.assertEqual(proof.metadata.efficacy_rate, 5000)
        self.assertEqual(list(proof.public_signals[4:]), [1, 0, 1, 0])
        self.assertTrue(verify_proof(proof).valid)

    def test_efficacy_upper_bound(self):
        full = generate_proof(passing_stats(treatment_success=400), generate_salt(), THRESHOLDS)
        self.assertEqual(full.metadata.efficacy_rate, 100)
        self.assertEqual(full.overall_valid, 1)

        over = generate_proof(passing_stats(treatment_success=404), generate_salt(), THRESHOLDS)
        self.assertEqual(over.metadata.efficacy_rate, 101)
        self.assertEqual(over.public_signals[5], 0)
        self.assertEqual(over.overall_valid, 0)


class TestSaltIndependence(unittest.TestCase):

    def test_same_stats_different_salts(self):
        stats = passing_stats()
        p1 = generate_proof(stats, generate_salt(), THRESHOLDS)
        p2 = generate_proof(stats, generate_salt(), THRESHOLDS)

        self.assertEqual(p1.metadata.efficacy_rate, p2.metadata.efficacy_rate)
        self.assertEqual(p1.public_signals[4:], p2.public_signals[4:])
        self.assertNotEqual(p1.data_commitment, p2.data_commitment)
        self.assertNotEqual(p1.blob, p2.blob)
        self.assertNotEqual(p1.proof_hash, p2.proof_hash)

    def test_same_salt_same_signals(self):
        stats = passing_stats()
        salt = generate_salt()
        p1 = generate_proof(stats, salt, THRESHOLDS)
        p2 = generate_proof(stats, salt, THRESHOLDS)
        self.assertEqual(p1.public_signals, p2.public_signals)
        self.assertEqual(p1.proof_hash, p2.proof_hash)


class TestInvalidStats(unittest.TestCase):
    """Structurally invalid statistics are rejected before proving."""

    def test_negative_count(self):
        with self.assertRaises(InvalidStats) as ctx:
            passing_stats(patient_count=-1)
        self.assertEqual(ctx.exception.field, "patientCount")

    def test_control_success_exceeds_base(self):
        with self.assertRaises(InvalidStats):
            passing_stats(control_success=201)

    def test_p_value_out_of_range(self):
        for bad in (-0.1, 1.5, float("nan"), float("inf")):
            with self.subTest(p_value=bad):
                with self.assertRaises(InvalidStats):
                    passing_stats(p_value=bad)

    def test_non_integer_counts(self):
        for bad in (12.5, "400", True):
            with self.subTest(value=bad):
                with self.assertRaises(InvalidStats):
                    passing_stats(patient_count=bad)

    def test_missing_field(self):
        stats = dict(SCENARIO_STATS)
        del stats["pValue"]
        with self.assertRaises(InvalidStats):
            generate_proof(stats, generate_salt(), THRESHOLDS)

    def test_invalid_salt(self):
        for bad in (0, -1, "salt", None):
            with self.subTest(salt=bad):
                with self.assertRaises(InvalidStats):
                    generate_proof(SCENARIO_STATS, bad, THRESHOLDS)

    def test_invalid_thresholds(self):
        with self.assertRaises(InvalidStats):
            ProofThresholds(min_patients=-1)
        with self.assertRaises(InvalidStats):
            generate_proof(SCENARIO_STATS, generate_salt(), {"minPatients": "100"})


class TestAttestedProofs(unittest.TestCase):
    """Proofs signed by a prover key and checked against a trust store."""

    def setUp(self):
        self.key = ProverKey.generate("kid:hospital-test")
        self.generator = MedicalProofGenerator(prover_key=self.key)

    def test_attested_proof_verifies(self):
        proof = self.generator.generate_proof(passing_stats(), generate_salt(), THRESHOLDS)

        self.assertTrue(proof.metadata.verified)
        attestation = proof.metadata.attestation
        self.assertEqual(attestation["kid"], "kid:hospital-test")
        self.assertEqual(attestation["alg"], "ed25519")

        result = verify_proof(proof, self.key.trust_store())
        self.assertTrue(result.valid, result.error)
        self.assertEqual(result.method, METHOD_ATTESTED)

    def test_attested_proof_still_verifies_without_trust_store(self):
        proof = self.generator.generate_proof(passing_stats(), generate_salt(), THRESHOLDS)
        self.assertTrue(verify_proof(proof).valid)

    def test_key_persistence(self):
        import os
        import tempfile

        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "prover_key.json")
            self.key.save(path)
            loaded = ProverKey.load(path)
        self.assertEqual(loaded, self.key)
        self.assertEqual(loaded.verify_key_b64, self.key.verify_key_b64)


class TestResearchInsights(unittest.TestCase):

    def test_insights_buckets(self):
        stats = MedicalStats(
            patient_count=400,
            treatment_success=160,
            control_success=50,
            control_count=200,
            p_value=0.003,
        )
        insights = research_insights(stats)

        # treatment arm 160/200 = 80%, control 50/200 = 25%
        efficacy = insights["treatmentEfficacy"]
        self.assertEqual(efficacy["absoluteImprovement"], "53-57% improvement over control")
        self.assertEqual(efficacy["relativeImprovement"], "220% relative improvement")
        self.assertEqual(efficacy["effectSize"], "Very large effect size")

        characteristics = insights["studyCharacteristics"]
        self.assertEqual(characteristics["sampleSize"], "Large cohort (300-499 patients)")
        self.assertEqual(characteristics["pValue"], "p < 0.01 (very significant)")
        self.assertEqual(characteristics["statisticalPower"], "High (>0.80)")

        clinical = insights["clinicalSignificance"]
        self.assertEqual(clinical["numberNeededToTreat"], 2)
        self.assertEqual(clinical["riskReduction"], "55% absolute risk reduction")

    def test_sample_size_buckets(self):
        from medproof.insights import sample_size_range

        self.assertEqual(sample_size_range(0), "Very small cohort (<50 patients)")
        self.assertEqual(sample_size_range(49), "Very small cohort (<50 patients)")
        self.assertEqual(sample_size_range(50), "Small cohort (50-99 patients)")
        self.assertEqual(sample_size_range(100), "Medium cohort (100-299 patients)")
        self.assertEqual(sample_size_range(999), "Very large cohort (500-999 patients)")
        self.assertEqual(sample_size_range(1670), "Multicenter study (>1000 patients)")

    def test_no_raw_counts(self):
        stats = MedicalStats.from_dict(SCENARIO_STATS)
        text = json.dumps(research_insights(stats))
        self.assertNotIn("1670", text)
        self.assertNotIn("1303", text)
        self.assertNotIn("treatmentRate", text)
        self.assertNotIn("controlRate", text)

    def test_successes_above_arm_size(self):
        # 1303 successes against a treatment arm of 847: rate taken over the cohort
        insights = research_insights(MedicalStats.from_dict(SCENARIO_STATS))
        self.assertEqual(
            insights["treatmentEfficacy"]["absoluteImprovement"],
            "24-28% improvement over control",
        )
        self.assertEqual(insights["clinicalSignificance"]["numberNeededToTreat"], 4)

        # 1303 successes in a cohort of 50: rate capped at 100%
        small = research_insights(MedicalStats.from_dict(dict(SCENARIO_STATS, patientCount=50)))
        self.assertEqual(small["clinicalSignificance"]["riskReduction"], "48% absolute risk reduction")
        self.assertEqual(small["studyCharacteristics"]["sampleSize"], "Small cohort (50-99 patients)")

    def test_undefined_ratios(self):
        stats = MedicalStats(
            patient_count=100,
            treatment_success=30,
            control_success=0,
            control_count=0,
            p_value=0.2,
        )
        insights = research_insights(stats)
        self.assertIsNone(insights["treatmentEfficacy"]["relativeImprovement"])
        self.assertEqual(insights["studyCharacteristics"]["pValue"], "p ≥ 0.05 (not significant)")

        worse = MedicalStats(
            patient_count=200,
            treatment_success=10,
            control_success=50,
            control_count=100,
            p_value=0.2,
        )
        self.assertIsNone(research_insights(worse)["clinicalSignificance"]["numberNeededToTreat"])


class TestBatchVerification(unittest.TestCase):

    def test_batch_summary(self):
        good = generate_proof(passing_stats(), generate_salt(), THRESHOLDS).to_dict()
        tampered = json.loads(json.dumps(good))
        tampered["publicSignals"][7] = 0

        summary = verify_batch([good, tampered, {"garbage": True}, good])

        self.assertEqual(summary["totalProofs"], 4)
        self.assertEqual(summary["validProofs"], 2)
        self.assertEqual(summary["invalidProofs"], 2)
        self.assertEqual(summary["verificationRate"], 50.0)
        self.assertEqual(len(summary["results"]), 4)
        self.assertFalse(summary["results"][1]["valid"])
        self.assertIn("error", summary["results"][1])

    def test_empty_batch(self):
        summary = ProofVerifier().verify_batch([])
        self.assertEqual(summary["totalProofs"], 0)
        self.assertEqual(summary["verificationRate"], 0.0)


if __name__ == "__main__":
    unittest.main()
