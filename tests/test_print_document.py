"""Tests for the print document builder."""

from datetime import datetime

import pytest

from conftest import make_program, make_results


class TestPrintDocument:

    def test_header_and_summary(self, sample_results):
        from benefit_vault.export.print_document import PrintDocumentBuilder, PrintUserInfo

        doc = PrintDocumentBuilder().build(sample_results, PrintUserInfo(name="Jane Doe"))
        assert "Benefit Eligibility Results" in doc
        assert "Prepared for: Jane Doe" in doc
        assert "Date: May 1, 2024" in doc
        assert "<strong>Total Programs:</strong> 4" in doc
        assert "<strong>Qualified:</strong> 1" in doc

    def test_sections_exclude_not_qualified(self, sample_results):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        doc = PrintDocumentBuilder().build(sample_results)
        assert "Programs You Qualify For" in doc
        assert "Programs You Likely Qualify For" in doc
        assert "Programs You May Qualify For" in doc
        assert "Program snap" in doc
        assert "Program ssi" not in doc

    def test_program_details(self):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        doc = PrintDocumentBuilder().build(make_results(qualified=[make_program("snap")]))
        assert "$1,234.56/monthly" in doc
        assert "<strong>Why:</strong> Household income is below the limit" in doc
        assert "Photo ID" in doc and "(DMV)" in doc
        # optional documents are not listed
        assert "Lease" not in doc
        assert 'href="https://apply.example.gov/snap"' in doc
        assert 'aria-label="Visit website for Apply online"' in doc

    def test_footer(self, sample_results):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        doc = PrintDocumentBuilder().build(sample_results)
        assert "for informational purposes only" in doc
        assert "Printed on:" in doc
        assert "Privacy Notice" in doc

    @pytest.mark.parametrize("field,value", [
        ("program_name", "<script>alert(1)</script>SNAP"),
        ("program_description", '<img src=x onerror="alert(1)">'),
        ("jurisdiction", "<iframe src=javascript:alert(1)></iframe>GA"),
    ])
    def test_hostile_fields_are_neutralised(self, field, value):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        results = make_results(qualified=[make_program("snap", **{field: value})])
        doc = PrintDocumentBuilder().build(results).lower()
        assert "<script" not in doc
        assert "<img" not in doc
        assert "<iframe" not in doc
        assert "onerror" not in doc

    def test_javascript_links_never_rendered(self):
        from benefit_vault.export.print_document import PrintDocumentBuilder
        from benefit_vault.models import NextStep

        program = make_program("snap", next_steps=[
            NextStep(step="Click me", url="javascript:alert(1)"),
            NextStep(step="Data", url="data:text/html,<script>alert(1)</script>"),
        ])
        doc = PrintDocumentBuilder().build(make_results(qualified=[program]))
        assert "javascript:" not in doc.lower()
        assert "data:text" not in doc.lower()
        assert "Click me" in doc

    def test_hostile_user_name(self, sample_results):
        from benefit_vault.export.print_document import PrintDocumentBuilder, PrintUserInfo

        doc = PrintDocumentBuilder().build(
            sample_results, PrintUserInfo(name='<script>steal()</script>"><b>Jane')
        )
        assert "<script" not in doc.lower()
        assert "<b>" not in doc

    def test_missing_optional_data(self):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        program = make_program(
            "snap",
            estimated_benefit=None,
            required_documents=[],
            next_steps=[],
            program_description="",
        )
        doc = PrintDocumentBuilder().build(make_results(qualified=[program]))
        assert "Estimated Benefit" not in doc
        assert "Required Documents" not in doc
        assert "Next Steps" not in doc

    def test_broken_program_falls_back_to_name(self):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        program = make_program("snap", required_documents=None, explanation=None)
        program.next_steps = 42  # not iterable
        doc = PrintDocumentBuilder().build(make_results(qualified=[program]))
        assert "Program snap" in doc

    def test_empty_results(self):
        from benefit_vault.export.print_document import PrintDocumentBuilder
        from benefit_vault.models import EligibilityResults

        doc = PrintDocumentBuilder().build(EligibilityResults(evaluated_at=datetime(2024, 1, 2)))
        assert "<strong>Total Programs:</strong> 0" in doc
        assert "Programs You Qualify For" not in doc

    def test_write_html_file(self, sample_results, tmp_path):
        from benefit_vault.export.print_document import PrintDocumentBuilder

        path = PrintDocumentBuilder().write(tmp_path / "out" / "results.html", sample_results)
        content = path.read_text(encoding="utf-8")
        assert content.startswith("<!DOCTYPE html>")
        assert "Program snap" in content
