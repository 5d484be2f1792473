"""
HTML body for notification and summary emails.
Output depends only on the arguments; every value is escaped.
"""

from dataclasses import dataclass
from datetime import date
from html import escape
from typing import Optional

DEFAULT_SUBJECT = "Vehicle Deadline Summary"
DATE_FORMAT = "%b %d, %Y"   # Oct 24, 2026

_CELL = 'style="padding: 10px;"'
_HEADER_CELL = 'style="padding: 10px; text-align: left;"'
_COLUMNS = ("Model", "Registration", "Tax Due", "Insurance Due", "Status")


@dataclass(frozen=True)
class SimplifiedVehicleView:
    model: str
    registration_number: str
    tax_expiry_date_formatted: str
    insurance_expiry_date_formatted: str
    overall_status: str


def format_expiry(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def render_report(recipient_name: Optional[str], vehicles: list, subject: Optional[str] = None) -> str:
    parts = [
        '<div style="font-family: Arial, sans-serif; line-height: 1.6;">',
        f"<h2>{escape(subject or DEFAULT_SUBJECT)}</h2>",
        f"<p>Hi {escape(recipient_name or 'there')},</p>",
        "<p>Here is your vehicle summary:</p>",
    ]

    if vehicles:
        parts.append(
            '<table border="1" style="border-collapse: collapse; width: 100%; '
            'margin-top: 20px; font-size: 14px;">'
        )
        parts.append('<thead style="background-color: #f2f2f2;"><tr>')
        parts.extend(f"<th {_HEADER_CELL}>{name}</th>" for name in _COLUMNS)
        parts.append("</tr></thead><tbody>")
        for v in vehicles:
            cells = (v.model, v.registration_number, v.tax_expiry_date_formatted,
                     v.insurance_expiry_date_formatted, v.overall_status)
            parts.append("<tr>" + "".join(f"<td {_CELL}>{escape(str(c))}</td>" for c in cells) + "</tr>")
        parts.append("</tbody></table>")
    else:
        parts.append('<p style="margin-top: 20px;">You currently have no vehicles with relevant updates.</p>')

    parts.append("<br/><p>Regards,<br/>The DeadlineMind Team</p></div>")
    return "\n".join(parts)
