"""Unit tests for the HTML report renderer."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from datetime import date
from app.services.report_renderer import SimplifiedVehicleView, format_expiry, render_report


def make_view(**overrides):
    fields = dict(model="Corolla", registration_number="KA01AB1234",
                  tax_expiry_date_formatted="Oct 24, 2026",
                  insurance_expiry_date_formatted="Mar 01, 2027", overall_status="Urgent")
    fields.update(overrides)
    return SimplifiedVehicleView(**fields)


class TestRenderReport:
    def test_renders_table_row(self):
        html = render_report("Jane", [make_view()], "Urgent: Tax Expiry for Corolla")
        assert "<h2>Urgent: Tax Expiry for Corolla</h2>" in html
        assert "Hi Jane," in html
        assert "KA01AB1234" in html and "Oct 24, 2026" in html and "Urgent" in html

    def test_empty_list_renders_message_not_table(self):
        html = render_report("Jane", [])
        assert "<table" not in html
        assert "no vehicles with relevant updates" in html

    def test_defaults(self):
        html = render_report(None, [])
        assert "Vehicle Deadline Summary" in html
        assert "Hi there," in html

    def test_values_are_escaped(self):
        html = render_report("<b>Eve</b>", [make_view(model="<script>x</script>")])
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html

    def test_deterministic(self):
        views = [make_view(), make_view(model="Swift")]
        assert render_report("Jane", views) == render_report("Jane", views)

    def test_format_expiry(self):
        assert format_expiry(date(2026, 3, 1)) == "Mar 01, 2026"
