"""Tests for the eligibility result data model."""

from datetime import datetime, timezone

import pytest

from conftest import make_program, make_results


class TestTimestamps:

    def test_naive_datetime_is_utc(self):
        from benefit_vault.models import to_iso

        assert to_iso(datetime(2024, 5, 1, 12, 0)) == "2024-05-01T12:00:00+00:00"

    def test_from_iso_variants(self):
        from benefit_vault.models import from_iso

        expected = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert from_iso("2024-05-01T12:00:00+00:00") == expected
        assert from_iso("2024-05-01T12:00:00") == expected
        assert from_iso(expected.timestamp() * 1000) == expected

    def test_from_iso_rejects_garbage(self):
        from benefit_vault.models import from_iso

        with pytest.raises(ValueError):
            from_iso("yesterday")
        with pytest.raises(ValueError):
            from_iso(None)


class TestEligibilityResults:

    def test_dict_roundtrip(self, sample_results):
        from benefit_vault.models import EligibilityResults

        data = sample_results.to_dict()
        assert set(data) == {"qualified", "likely", "maybe", "notQualified", "totalPrograms", "evaluatedAt"}
        assert EligibilityResults.from_dict(data).to_dict() == data

    def test_wire_keys_are_camel_case(self):
        program = make_program("snap").to_dict()
        assert program["programId"] == "snap"
        assert program["estimatedBenefit"] == {"amount": 1234.56, "frequency": "monthly"}
        assert program["explanation"]["rulesCited"] == ["7 CFR 273.9"]
        assert program["nextSteps"][0]["url"] == "https://apply.example.gov/snap"

    def test_explanation_extra_keys_kept(self):
        from benefit_vault.models import Explanation

        data = {"reason": "r", "details": [], "rulesCited": [], "calculations": [{"x": 1}]}
        assert Explanation.from_dict(data).to_dict() == data

    def test_program_ids_in_partition_order(self, sample_results):
        assert sample_results.program_ids() == ["snap", "wic", "liheap", "ssi"]

    def test_validate_duplicate_program(self):
        from benefit_vault.exceptions import ValidationError

        results = make_results(qualified=[make_program("snap")], not_qualified=[make_program("snap", "not-qualified")])
        with pytest.raises(ValidationError, match="snap"):
            results.validate()

    def test_unknown_status_rejected(self, sample_results):
        from benefit_vault.models import EligibilityResults

        data = sample_results.to_dict()
        data["qualified"][0]["status"] = "definitely"
        with pytest.raises(ValueError):
            EligibilityResults.from_dict(data)
