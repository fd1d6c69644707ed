"""Print/PDF document for eligibility results.

Builds a self-contained, inline-styled HTML fragment summarizing the
results. Every interpolated field is sanitized and escaped, and the whole
fragment is reduced to the rich-text allow-list before it is returned.
The caller feeds the output to a non-scripting print/PDF pipeline.
"""

import html
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union

from ..core.audit_log import EventType, audit_best_effort
from ..exceptions import StorageError
from ..models import EligibilityResults, ProgramEligibilityResult, utcnow
from ..sanitizer import sanitize_rich_text, sanitize_text, sanitize_url

logger = logging.getLogger(__name__)

# (partition attribute, heading, accent color)
_SECTIONS = [
    ("qualified", "✓ Programs You Qualify For", "#059669"),
    ("likely", "✓ Programs You Likely Qualify For", "#2563eb"),
    ("maybe", "? Programs You May Qualify For", "#ca8a04"),
]

_DISCLAIMER = (
    "This eligibility screening is for informational purposes only. "
    "Final eligibility determinations are made by program administrators."
)
_PRIVACY_NOTICE = (
    "All eligibility calculations were performed locally on your device. "
    "No personal information was sent to external servers. "
    "This document contains sensitive information - please keep it secure."
)

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Benefit Eligibility Results</title>
<style>
  @page {{ margin: 15mm; }}
  body {{ margin: 0; color: #111827; }}
  a {{ word-break: break-all; }}
</style>
</head>
<body>
{body}
</body>
</html>
"""


@dataclass
class PrintUserInfo:
    name: Optional[str] = None
    evaluation_date: Optional[datetime] = None


def _text(value: Any) -> str:
    """Sanitize to plain text, then escape for markup."""
    return html.escape(sanitize_text(value), quote=True)


def _format_date(value: Any) -> str:
    if isinstance(value, datetime):
        return f"{value:%B} {value.day}, {value.year}"
    return _text(value)


def _format_amount(amount: Any) -> str:
    try:
        return f"{float(amount):,.2f}"
    except (TypeError, ValueError):
        return _text(amount)


class PrintDocumentBuilder:
    """Renders EligibilityResults into print-ready markup."""

    def build(
        self,
        results: EligibilityResults,
        user_info: Optional[PrintUserInfo] = None,
    ) -> str:
        user_info = user_info or PrintUserInfo()
        evaluation_date = user_info.evaluation_date or getattr(results, "evaluated_at", None)
        user_name = _text(user_info.name)

        parts: List[str] = [
            '<div style="font-family: system-ui, -apple-system, sans-serif; padding: 20px; max-width: 800px;">',
            '<div style="text-align: center; border-bottom: 2px solid #1f2937; padding-bottom: 10px; margin-bottom: 20px;">',
            '<h1 style="margin: 0; font-size: 24pt;">Benefit Eligibility Results</h1>',
        ]
        if user_name:
            parts.append(f'<p style="margin: 5px 0;">Prepared for: {user_name}</p>')
        if evaluation_date is not None:
            parts.append(f'<p style="margin: 5px 0;">Date: {_format_date(evaluation_date)}</p>')
        parts.append('</div>')

        parts.append(self._summary(results))

        for attr, heading, color in _SECTIONS:
            programs = list(getattr(results, attr, None) or [])
            if not programs:
                continue
            parts.append('<div class="program-section">')
            parts.append(
                f'<h2 style="color: {color}; border-bottom: 2px solid {color};">{heading}</h2>'
            )
            parts.extend(self._program_safe(p) for p in programs)
            parts.append('</div>')

        parts.append(self._footer())
        parts.append('</div>')

        return sanitize_rich_text("".join(parts))

    def write(
        self,
        path: Union[str, Path],
        results: EligibilityResults,
        user_info: Optional[PrintUserInfo] = None,
    ) -> Path:
        """Write the document as a standalone UTF-8 HTML file."""
        path = Path(path)
        document = _PAGE_TEMPLATE.format(body=self.build(results, user_info))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(document, encoding="utf-8")
        except OSError as e:
            raise StorageError("Could not write print document", operation="write_print") from e

        audit_best_effort(EventType.PRINT_RENDERED, "Print document written", {
            "program_count": sum(
                len(getattr(results, attr, None) or []) for attr, _, _ in _SECTIONS
            ),
        })
        return path

    # ── Sections ─────────────────────────────────────────────────────

    @staticmethod
    def _summary(results: EligibilityResults) -> str:
        def count(attr: str) -> int:
            return len(getattr(results, attr, None) or [])

        return (
            '<div style="border: 1px solid #d1d5db; border-radius: 8px; padding: 15px; margin-bottom: 20px;">'
            '<h2 style="margin-top: 0;">Summary</h2>'
            '<div style="display: grid; grid-template-columns: 1fr 1fr; gap: 15px;">'
            f'<div><strong>Total Programs:</strong> {_text(getattr(results, "total_programs", ""))}</div>'
            f'<div style="color: #059669;"><strong>Qualified:</strong> {count("qualified")}</div>'
            f'<div style="color: #2563eb;"><strong>Likely:</strong> {count("likely")}</div>'
            f'<div style="color: #ca8a04;"><strong>Maybe:</strong> {count("maybe")}</div>'
            '</div></div>'
        )

    def _program_safe(self, program: ProgramEligibilityResult) -> str:
        try:
            return self._program(program)
        except Exception:
            logger.warning("Could not fully render a program; using fallback", exc_info=True)
            name = _text(getattr(program, "program_name", "")) or "Program"
            return (
                '<div style="border: 1px solid #e5e7eb; border-radius: 8px; padding: 15px; margin-bottom: 15px;">'
                f'<h3 style="margin-top: 0;">{name}</h3></div>'
            )

    @staticmethod
    def _program(program: ProgramEligibilityResult) -> str:
        parts = [
            '<div style="border: 1px solid #e5e7eb; border-radius: 8px; padding: 15px; '
            'margin-bottom: 15px; page-break-inside: avoid;">',
            f'<h3 style="margin-top: 0;">{_text(program.program_name)}</h3>',
            f'<p style="color: #6b7280; font-size: 10pt;">{_text(program.jurisdiction)}</p>',
            f'<p>{_text(program.program_description)}</p>',
        ]

        benefit = program.estimated_benefit
        if benefit is not None:
            frequency = _text(benefit.frequency)
            parts.append(
                '<div style="background: #eff6ff; border: 1px solid #bfdbfe; border-radius: 4px; '
                'padding: 10px; margin: 10px 0;">'
                f'<strong>Estimated Benefit:</strong> ${_format_amount(benefit.amount)}'
                f'{"/" + frequency if frequency else ""}</div>'
            )

        reason = _text(program.explanation.reason) if program.explanation else ""
        parts.append(f'<div style="margin: 15px 0;"><strong>Why:</strong> {reason}</div>')

        documents = [d for d in (program.required_documents or []) if d.required]
        if documents:
            items = []
            for doc in documents:
                where = _text(doc.where)
                suffix = f' <em style="color: #6b7280;">({where})</em>' if where else ""
                items.append(f"<li>{_text(doc.name)}{suffix}</li>")
            parts.append(
                '<div style="margin: 15px 0;"><strong>Required Documents:</strong>'
                f'<ul style="margin: 5px 0; padding-left: 20px;">{"".join(items)}</ul></div>'
            )

        steps = program.next_steps or []
        if steps:
            items = []
            for step in steps:
                text = _text(step.step)
                url = sanitize_url(step.url)
                link = ""
                if url:
                    safe_url = html.escape(url, quote=True)
                    link = (
                        f'<br><a href="{safe_url}" style="color: #2563eb; font-size: 9pt;" '
                        f'aria-label="Visit website for {text}">{safe_url}</a>'
                    )
                items.append(f"<li>{text}{link}</li>")
            parts.append(
                '<div style="margin: 15px 0;"><strong>Next Steps:</strong>'
                f'<ol style="margin: 5px 0; padding-left: 20px;">{"".join(items)}</ol></div>'
            )

        parts.append('</div>')
        return "".join(parts)

    @staticmethod
    def _footer() -> str:
        printed_on = utcnow().strftime("%Y-%m-%d %H:%M UTC")
        return (
            '<div style="border-top: 1px solid #d1d5db; padding-top: 15px; margin-top: 30px; '
            'text-align: center; font-size: 9pt; color: #6b7280;">'
            f'<p>{_DISCLAIMER}</p>'
            '<p style="margin-top: 10px;">Generated by Benefit Vault • All calculations performed locally on your device</p>'
            f'<p>Printed on: {printed_on}</p>'
            '</div>'
            '<div style="border: 1px solid #d1d5db; border-radius: 8px; padding: 10px; margin-top: 15px; '
            'background: #f9fafb; font-size: 9pt;">'
            '<h4 style="margin-top: 0; font-size: 10pt;">Privacy Notice</h4>'
            f'<p style="margin: 0;">{_PRIVACY_NOTICE}</p>'
            '</div>'
        )
