"""Unit Tests - Templates."""

from datetime import date

import pytest

from hangar.core.templates import TEMPLATES, format_date_br, format_template, get_template


class TestTemplates:
    """Tests for WhatsApp message templates."""

    def test_all_required_templates_exist(self) -> None:
        """Test that all required template keys exist."""
        for key in ("booking_received", "booking_confirmed", "vehicle_ready", "booking_canceled"):
            assert key in TEMPLATES, f"Missing template: {key}"

    def test_get_template_unknown_key(self) -> None:
        """Test that an unknown key raises KeyError."""
        with pytest.raises(KeyError):
            get_template("nonexistent_key")

    def test_format_template_fills_placeholders(self) -> None:
        """Test that format_template fills placeholders correctly."""
        result = format_template(
            "booking_confirmed",
            customer_name="Ana",
            business_name="CarbonCar",
            service="Polimento",
            date="23/12/2024",
            time="09:00",
            vehicle_model="Civic",
            vehicle_plate="ABC1D23",
        )

        assert "Ana" in result
        assert "*CarbonCar*" in result
        assert "23/12/2024" in result
        assert "Civic (ABC1D23)" in result
        assert "{" not in result

    def test_missing_placeholder_renders_dashes(self) -> None:
        """Test that missing data does not break the message."""
        result = format_template("vehicle_ready", customer_name="Ana")

        assert "Ana" in result
        assert "---" in result

    def test_format_date_br(self) -> None:
        """Test DD/MM/YYYY formatting."""
        assert format_date_br(date(2024, 12, 3)) == "03/12/2024"
